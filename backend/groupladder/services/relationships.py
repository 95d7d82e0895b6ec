"""Teammate and opponent records for a single player.

Every counterpart a player has shared a match with gets a record of games,
wins, losses, goal difference and recent form. Superlatives ("best partner",
"biggest rival", ...) only consider counterparts with at least
``min_games`` shared games so a single lucky game cannot dominate them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Sequence

from ..config import MIN_RELATIONSHIP_GAMES, RECENT_FORM_LENGTH
from ..domain import MatchRecord


@dataclass(frozen=True)
class RelationshipStats:
    player_id: str
    games_played: int
    wins: int
    losses: int
    goal_difference: int
    recent_form: list[str] = field(default_factory=list)

    @property
    def win_rate(self) -> float:
        return self.wins / self.games_played if self.games_played else 0.0


@dataclass(frozen=True)
class RelationshipStatsData:
    teammates: list[RelationshipStats] = field(default_factory=list)
    opponents: list[RelationshipStats] = field(default_factory=list)
    top_teammate: Optional[RelationshipStats] = None
    worst_teammate: Optional[RelationshipStats] = None
    biggest_rival: Optional[RelationshipStats] = None
    easiest_opponent: Optional[RelationshipStats] = None


class _Tally:
    __slots__ = ("games", "wins", "losses", "goal_difference", "form")

    def __init__(self) -> None:
        self.games = 0
        self.wins = 0
        self.losses = 0
        self.goal_difference = 0
        self.form: list[str] = []

    def add(self, won: bool, goal_difference: int) -> None:
        self.games += 1
        self.goal_difference += goal_difference
        if won:
            self.wins += 1
        else:
            self.losses += 1
        self.form.append("W" if won else "L")

    def freeze(self, player_id: str, form_length: int) -> RelationshipStats:
        return RelationshipStats(
            player_id=player_id,
            games_played=self.games,
            wins=self.wins,
            losses=self.losses,
            goal_difference=self.goal_difference,
            recent_form=self.form[-form_length:],
        )


def _pick(
    candidates: list[RelationshipStats],
    better: Callable[[RelationshipStats, RelationshipStats], bool],
) -> Optional[RelationshipStats]:
    best: Optional[RelationshipStats] = None
    for candidate in candidates:
        if best is None or better(candidate, best):
            best = candidate
    return best


def _ordered(tallies: dict[str, _Tally], form_length: int) -> list[RelationshipStats]:
    records = [t.freeze(pid, form_length) for pid, t in tallies.items()]
    records.sort(key=lambda r: (-r.games_played, r.player_id))
    return records


def compute_relationships(
    player_id: str,
    matches: Sequence[MatchRecord],
    *,
    min_games: int = MIN_RELATIONSHIP_GAMES,
    form_length: int = RECENT_FORM_LENGTH,
) -> RelationshipStatsData:
    """Partition ``player_id``'s matches by teammate and by opponent.

    ``matches`` must be ordered oldest first: recent form keeps the last
    ``form_length`` results in play order.
    """

    teammates: dict[str, _Tally] = {}
    opponents: dict[str, _Tally] = {}

    for match in matches:
        if not match.involves(player_id):
            continue
        won = match.won_by(player_id)
        goal_diff = match.goals_for(player_id) - match.goals_against(player_id)

        teammate = match.teammate_of(player_id)
        if teammate is not None:
            teammates.setdefault(teammate, _Tally()).add(won, goal_diff)
        for opponent in match.opponents_of(player_id):
            opponents.setdefault(opponent, _Tally()).add(won, goal_diff)

    teammate_records = _ordered(teammates, form_length)
    opponent_records = _ordered(opponents, form_length)

    qualified_teammates = [t for t in teammate_records if t.games_played >= min_games]
    qualified_opponents = [o for o in opponent_records if o.games_played >= min_games]

    return RelationshipStatsData(
        teammates=teammate_records,
        opponents=opponent_records,
        top_teammate=_pick(
            [t for t in qualified_teammates if t.wins > 0],
            lambda cur, best: cur.win_rate > best.win_rate,
        ),
        worst_teammate=_pick(
            [t for t in qualified_teammates if t.losses > 0],
            lambda cur, best: cur.win_rate < best.win_rate,
        ),
        biggest_rival=_pick(
            qualified_opponents,
            lambda cur, best: cur.games_played > best.games_played,
        ),
        easiest_opponent=_pick(
            qualified_opponents,
            lambda cur, best: cur.win_rate > best.win_rate,
        ),
    )
