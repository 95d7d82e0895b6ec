from dataclasses import dataclass
from typing import Optional, Sequence

from ..config import BASELINE_RATING, K_FACTOR, RATING_CEILING, RATING_FLOOR
from ..domain import MatchRecord
from .rating import compute_ratings


@dataclass(frozen=True)
class PlayerSeasonStats:
    """Derived aggregate for one (player, season) pair."""

    player_id: str
    season_id: str
    matches_played: int
    wins: int
    losses: int
    goals_for: int
    goals_against: int
    rating: float

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against

    @property
    def win_rate(self) -> float:
        return self.wins / self.matches_played if self.matches_played else 0.0


def season_matches(
    season_id: str,
    matches: Sequence[MatchRecord],
    match_type: Optional[str] = None,
) -> list[MatchRecord]:
    return [
        m
        for m in matches
        if m.season_id == season_id and (match_type is None or m.match_type == match_type)
    ]


def leaderboard_sort_key(stats: PlayerSeasonStats) -> tuple[float, int, str]:
    """Rating descending, then wins descending, then player id ascending."""

    return (-stats.rating, -stats.wins, stats.player_id)


def season_leaderboard(
    season_id: str,
    matches: Sequence[MatchRecord],
    *,
    match_type: Optional[str] = None,
    k_factor: float = K_FACTOR,
    baseline: float = BASELINE_RATING,
    floor: Optional[float] = RATING_FLOOR,
    ceiling: Optional[float] = RATING_CEILING,
) -> list[PlayerSeasonStats]:
    """Rank every player with at least one match in ``season_id``.

    ``matches`` must be ordered oldest first; matches from other seasons (or
    other match types when ``match_type`` is given) are ignored. Ratings are
    replayed from the baseline over the season subset only.
    """

    scoped = season_matches(season_id, matches, match_type)
    ratings = compute_ratings(
        scoped, k_factor=k_factor, baseline=baseline, floor=floor, ceiling=ceiling
    )

    counters: dict[str, dict[str, int]] = {}
    for match in scoped:
        for pid in match.participants:
            entry = counters.setdefault(
                pid,
                {"played": 0, "wins": 0, "losses": 0, "for": 0, "against": 0},
            )
            entry["played"] += 1
            if match.won_by(pid):
                entry["wins"] += 1
            else:
                entry["losses"] += 1
            entry["for"] += match.goals_for(pid)
            entry["against"] += match.goals_against(pid)

    rows = [
        PlayerSeasonStats(
            player_id=pid,
            season_id=season_id,
            matches_played=c["played"],
            wins=c["wins"],
            losses=c["losses"],
            goals_for=c["for"],
            goals_against=c["against"],
            rating=ratings.get(pid, baseline),
        )
        for pid, c in counters.items()
    ]
    rows.sort(key=leaderboard_sort_key)
    return rows


def player_season_stats(
    player_id: str,
    season_id: str,
    matches: Sequence[MatchRecord],
    **kwargs,
) -> Optional[PlayerSeasonStats]:
    """Return the player's season aggregate, or ``None`` without season presence."""

    for row in season_leaderboard(season_id, matches, **kwargs):
        if row.player_id == player_id:
            return row
    return None


def rank_changes(
    season_id: str,
    matches: Sequence[MatchRecord],
    *,
    window: int = 5,
    **kwargs,
) -> dict[str, int]:
    """Rank movement per player compared to before the last ``window`` season matches.

    Positive values mean the player climbed. Players absent from the earlier
    table count as unchanged.
    """

    scoped = season_matches(season_id, matches, kwargs.get("match_type"))
    current = season_leaderboard(season_id, scoped, **kwargs)
    previous = season_leaderboard(season_id, scoped[:-window] if window > 0 else scoped, **kwargs)
    prev_rank = {row.player_id: i + 1 for i, row in enumerate(previous)}

    changes: dict[str, int] = {}
    for i, row in enumerate(current):
        curr_rank = i + 1
        changes[row.player_id] = prev_rank.get(row.player_id, curr_rank) - curr_rank
    return changes
