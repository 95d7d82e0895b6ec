from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal, Optional, Sequence

from ..domain import MatchRecord

StreakType = Literal["win", "loss"]
Position = Literal["attacker", "defender"]


@dataclass(frozen=True)
class StreakData:
    current_streak: int = 0
    streak_type: Optional[StreakType] = None
    best_streak: int = 0
    worst_streak: int = 0


def player_results(player_id: str, matches: Sequence[MatchRecord]) -> list[bool]:
    """Return ``True``/``False`` per match the player took part in, in input order."""

    return [m.won_by(player_id) for m in matches if m.involves(player_id)]


def compute_streaks(player_id: str, matches: Sequence[MatchRecord]) -> StreakData:
    """Compute current, best win, and worst loss streaks.

    ``matches`` must be ordered oldest first; matches the player did not
    take part in are skipped rather than treated as breaks.
    """
    results = player_results(player_id, matches)

    longest_win = longest_loss = 0
    curr_win = curr_loss = 0
    for r in results:
        if r:
            curr_win += 1
            curr_loss = 0
            longest_win = max(longest_win, curr_win)
        else:
            curr_loss += 1
            curr_win = 0
            longest_loss = max(longest_loss, curr_loss)

    current = 0
    streak_type: Optional[StreakType] = None
    if results:
        last = results[-1]
        for r in reversed(results):
            if r != last:
                break
            current += 1
        streak_type = "win" if last else "loss"

    return StreakData(
        current_streak=current,
        streak_type=streak_type,
        best_streak=longest_win,
        worst_streak=longest_loss,
    )


@dataclass(frozen=True)
class PositionStats:
    games_as_attacker: int = 0
    games_as_defender: int = 0
    wins_as_attacker: int = 0
    wins_as_defender: int = 0
    losses_as_attacker: int = 0
    losses_as_defender: int = 0
    preferred_position: Optional[Position] = None

    @property
    def win_rate_as_attacker(self) -> float:
        games = self.games_as_attacker
        return self.wins_as_attacker / games if games else 0.0

    @property
    def win_rate_as_defender(self) -> float:
        games = self.games_as_defender
        return self.wins_as_defender / games if games else 0.0


def compute_position_stats(player_id: str, matches: Sequence[MatchRecord]) -> PositionStats:
    """Aggregate 2v2 results by team slot: first slot attacks, second defends."""

    counts = {
        "attacker": {"games": 0, "wins": 0, "losses": 0},
        "defender": {"games": 0, "wins": 0, "losses": 0},
    }
    for match in matches:
        if match.match_type != "2v2":
            continue
        side = match.side_of(player_id)
        if side is None:
            continue
        position = "attacker" if match.team(side).members[0] == player_id else "defender"
        bucket = counts[position]
        bucket["games"] += 1
        if match.won_by(player_id):
            bucket["wins"] += 1
        else:
            bucket["losses"] += 1

    attacker, defender = counts["attacker"], counts["defender"]
    stats = PositionStats(
        games_as_attacker=attacker["games"],
        games_as_defender=defender["games"],
        wins_as_attacker=attacker["wins"],
        wins_as_defender=defender["wins"],
        losses_as_attacker=attacker["losses"],
        losses_as_defender=defender["losses"],
    )

    if not (stats.games_as_attacker or stats.games_as_defender):
        return stats

    # More games decides; on equal games the better win rate, then attacker.
    if stats.games_as_attacker != stats.games_as_defender:
        preferred: Position = (
            "attacker" if stats.games_as_attacker > stats.games_as_defender else "defender"
        )
    elif stats.win_rate_as_defender > stats.win_rate_as_attacker:
        preferred = "defender"
    else:
        preferred = "attacker"
    return replace(stats, preferred_position=preferred)
