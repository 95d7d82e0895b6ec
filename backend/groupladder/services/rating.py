import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..config import BASELINE_RATING, K_FACTOR, RATING_CEILING, RATING_FLOOR
from ..domain import MatchRecord, Team

logger = logging.getLogger(__name__)


def expected_score(rating: float, opponent_rating: float) -> float:
    """Probability that a side rated ``rating`` beats ``opponent_rating``."""

    return 1 / (1 + 10 ** ((opponent_rating - rating) / 400))


def team_rating(team: Team, ratings: dict[str, float], baseline: float) -> float:
    members = team.members
    return sum(ratings.get(pid, baseline) for pid in members) / len(members)


def _clamp(value: float, floor: Optional[float], ceiling: Optional[float]) -> float:
    if floor is not None and value < floor:
        return floor
    if ceiling is not None and value > ceiling:
        return ceiling
    return value


def apply_match(
    ratings: dict[str, float],
    match: MatchRecord,
    *,
    k_factor: float = K_FACTOR,
    baseline: float = BASELINE_RATING,
    floor: Optional[float] = RATING_FLOOR,
    ceiling: Optional[float] = RATING_CEILING,
) -> dict[str, tuple[float, float]]:
    """Apply one match to ``ratings`` in place.

    Each team plays as a single combatant rated at the mean of its members.
    The resulting delta is applied identically to every member of the team.

    Returns a mapping ``player_id -> (pre_game_rating, post_game_rating)``.
    """

    if match.is_tie:
        logger.warning(
            "match %s has a tied score %s-%s; counting it as a team 2 win",
            match.id,
            match.score1,
            match.score2,
        )

    team1_rating = team_rating(match.team1, ratings, baseline)
    team2_rating = team_rating(match.team2, ratings, baseline)
    expected_team1 = expected_score(team1_rating, team2_rating)
    actual_team1 = 1.0 if match.winning_side == 1 else 0.0

    delta_team1 = k_factor * (actual_team1 - expected_team1)
    delta_team2 = -delta_team1

    changes: dict[str, tuple[float, float]] = {}
    for team, delta in ((match.team1, delta_team1), (match.team2, delta_team2)):
        for pid in team.members:
            pre = ratings.get(pid, baseline)
            post = _clamp(pre + delta, floor, ceiling)
            ratings[pid] = post
            changes[pid] = (pre, post)
    return changes


def compute_ratings(
    matches: Iterable[MatchRecord],
    *,
    k_factor: float = K_FACTOR,
    baseline: float = BASELINE_RATING,
    floor: Optional[float] = RATING_FLOOR,
    ceiling: Optional[float] = RATING_CEILING,
) -> dict[str, float]:
    """Fold ``matches`` (oldest first) into a rating for every participant."""

    ratings: dict[str, float] = {}
    for match in matches:
        apply_match(
            ratings,
            match,
            k_factor=k_factor,
            baseline=baseline,
            floor=floor,
            ceiling=ceiling,
        )
    return ratings


def compute_rating(
    player_id: str,
    matches: Iterable[MatchRecord],
    *,
    k_factor: float = K_FACTOR,
    baseline: float = BASELINE_RATING,
    floor: Optional[float] = RATING_FLOOR,
    ceiling: Optional[float] = RATING_CEILING,
) -> float:
    ratings = compute_ratings(
        matches, k_factor=k_factor, baseline=baseline, floor=floor, ceiling=ceiling
    )
    return ratings.get(player_id, baseline)


@dataclass(frozen=True)
class RatingPoint:
    match_id: str
    match_number: int
    created_at: Optional[datetime]
    rating: float
    change: float
    result: str
    score: str


@dataclass(frozen=True)
class RatingHistory:
    player_id: str
    initial: float
    current: float
    highest: float
    lowest: float
    points: list[RatingPoint] = field(default_factory=list)


def rating_history(
    player_id: str,
    matches: Sequence[MatchRecord],
    *,
    k_factor: float = K_FACTOR,
    baseline: float = BASELINE_RATING,
    floor: Optional[float] = RATING_FLOOR,
    ceiling: Optional[float] = RATING_CEILING,
) -> RatingHistory:
    """Replay ``matches`` and record the player's rating after each of theirs."""

    ratings: dict[str, float] = {}
    points: list[RatingPoint] = []
    for match in matches:
        changes = apply_match(
            ratings,
            match,
            k_factor=k_factor,
            baseline=baseline,
            floor=floor,
            ceiling=ceiling,
        )
        if player_id not in changes:
            continue
        pre, post = changes[player_id]
        points.append(
            RatingPoint(
                match_id=match.id,
                match_number=len(points) + 1,
                created_at=match.created_at,
                rating=post,
                change=post - pre,
                result="win" if match.won_by(player_id) else "loss",
                score=f"{match.score1}-{match.score2}",
            )
        )

    values = [baseline] + [p.rating for p in points]
    return RatingHistory(
        player_id=player_id,
        initial=baseline,
        current=values[-1],
        highest=max(values),
        lowest=min(values),
        points=points,
    )
