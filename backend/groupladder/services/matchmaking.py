"""2v2 team suggestions for a pool of present players.

``balanced`` mode looks for the split whose team rating sums are closest,
nudged toward lineups where players sit in the position they win more from.
``rare`` mode looks for the split whose players have shared the fewest
matches, as teammates or opponents.
"""

from collections import Counter
from dataclasses import dataclass
from itertools import combinations
from typing import Iterable, Literal, Mapping, Optional, Sequence

from ..config import BASELINE_RATING
from ..domain import MatchRecord
from .stats import PositionStats
from .validation import ValidationError

Mode = Literal["balanced", "rare"]

MIN_POOL_SIZE = 4
MAX_POOL_SIZE = 7
# A 400-point gap between team rating sums scores zero on balance.
RATING_GAP_SCALE = 400.0
BALANCE_WEIGHT = 0.8
# Win rates closer than this do not establish a position preference.
PREFERENCE_MARGIN = 0.05
FULL_CONFIDENCE_GAMES = 10
NEUTRAL_CONFIDENCE = 0.3
RARITY_SCALE = 20


@dataclass(frozen=True)
class PositionPreference:
    player_id: str
    attacker_win_rate: float = 0.5
    defender_win_rate: float = 0.5
    preferred_position: Optional[str] = None
    confidence: float = NEUTRAL_CONFIDENCE


@dataclass(frozen=True)
class Lineup:
    attacker: str
    defender: str

    @property
    def members(self) -> tuple[str, str]:
        return (self.attacker, self.defender)


@dataclass(frozen=True)
class MatchupSuggestion:
    mode: str
    team1: Lineup
    team2: Lineup
    rating_difference: float
    confidence: float
    shared_games: int = 0


def position_preference(
    player_id: str, stats: Optional[PositionStats] = None
) -> PositionPreference:
    """Turn a player's 2v2 position record into a preference.

    Without 2v2 games both positions count as even with low confidence.
    Confidence grows linearly to 1 at ``FULL_CONFIDENCE_GAMES``.
    """

    if stats is None or not (stats.games_as_attacker or stats.games_as_defender):
        return PositionPreference(player_id=player_id)

    games = stats.games_as_attacker + stats.games_as_defender
    attack, defend = stats.win_rate_as_attacker, stats.win_rate_as_defender
    preferred = None
    if attack > defend + PREFERENCE_MARGIN:
        preferred = "attacker"
    elif defend > attack + PREFERENCE_MARGIN:
        preferred = "defender"
    return PositionPreference(
        player_id=player_id,
        attacker_win_rate=attack,
        defender_win_rate=defend,
        preferred_position=preferred,
        confidence=min(games / FULL_CONFIDENCE_GAMES, 1.0),
    )


def check_pool(player_ids: Sequence[str]) -> list[str]:
    """Return the pool sorted, rejecting duplicates and unsupported sizes."""

    if len(set(player_ids)) != len(player_ids):
        raise ValidationError("A player cannot appear twice in the pool.")
    if not MIN_POOL_SIZE <= len(player_ids) <= MAX_POOL_SIZE:
        raise ValidationError(
            f"Matchmaking needs between {MIN_POOL_SIZE} and {MAX_POOL_SIZE} players."
        )
    return sorted(player_ids)


def team_splits(player_ids: Sequence[str]) -> list[tuple[tuple[str, str], tuple[str, str]]]:
    """Every way to pick four players and split them into two pairs.

    Each split appears once; mirrored splits are the same split.
    """

    splits = []
    for four in combinations(sorted(player_ids), 4):
        anchor, rest = four[0], four[1:]
        for partner in rest:
            team1 = (anchor, partner)
            team2 = tuple(p for p in rest if p != partner)
            splits.append((team1, team2))
    return splits


def _lineups(team: tuple[str, str]) -> tuple[Lineup, Lineup]:
    return Lineup(team[0], team[1]), Lineup(team[1], team[0])


def _fit(pref: PositionPreference, position: str) -> float:
    if position == "attacker":
        diff = pref.attacker_win_rate - pref.defender_win_rate
    else:
        diff = pref.defender_win_rate - pref.attacker_win_rate
    return max(0.0, min(1.0, 0.5 + diff))


def position_happiness(
    team1: Lineup, team2: Lineup, preferences: Mapping[str, PositionPreference]
) -> float:
    """Confidence-weighted fit of every player to the slot they were given."""

    weighted = 0.0
    total = 0.0
    for lineup in (team1, team2):
        for player_id, position in (
            (lineup.attacker, "attacker"),
            (lineup.defender, "defender"),
        ):
            pref = preferences.get(player_id) or PositionPreference(player_id=player_id)
            weighted += _fit(pref, position) * pref.confidence
            total += pref.confidence
    return weighted / total if total else 0.5


def rating_difference(
    team1: Iterable[str], team2: Iterable[str], ratings: Mapping[str, float]
) -> float:
    def total(team: Iterable[str]) -> float:
        return sum(ratings.get(pid, BASELINE_RATING) for pid in team)

    return abs(total(team1) - total(team2))


def lineup_quality(
    team1: Lineup,
    team2: Lineup,
    ratings: Mapping[str, float],
    preferences: Mapping[str, PositionPreference],
) -> float:
    gap = rating_difference(team1.members, team2.members, ratings)
    balance = 1.0 - min(gap / RATING_GAP_SCALE, 1.0)
    happiness = position_happiness(team1, team2, preferences)
    return balance * BALANCE_WEIGHT + happiness * (1.0 - BALANCE_WEIGHT)


def _best_lineups(
    team1: tuple[str, str],
    team2: tuple[str, str],
    ratings: Mapping[str, float],
    preferences: Mapping[str, PositionPreference],
) -> tuple[Lineup, Lineup, float]:
    best = None
    for first in _lineups(team1):
        for second in _lineups(team2):
            score = lineup_quality(first, second, ratings, preferences)
            if best is None or score > best[2]:
                best = (first, second, score)
    return best


def pair_counts(matches: Iterable[MatchRecord]) -> Counter:
    """Matches shared by each unordered pair of players, on either side."""

    counts: Counter = Counter()
    for match in matches:
        players = sorted(set(match.participants))
        for a, b in combinations(players, 2):
            counts[(a, b)] += 1
    return counts


def shared_games(
    team1: tuple[str, str], team2: tuple[str, str], counts: Mapping[tuple[str, str], int]
) -> int:
    return sum(
        counts.get(tuple(sorted(pair)), 0)
        for pair in combinations(team1 + team2, 2)
    )


def find_balanced_matchup(
    player_ids: Sequence[str],
    ratings: Mapping[str, float],
    preferences: Optional[Mapping[str, PositionPreference]] = None,
) -> MatchupSuggestion:
    """The split and positions with the highest quality score.

    Ties keep the first split in sorted player order.
    """

    pool = check_pool(player_ids)
    preferences = preferences or {}
    best = None
    for team1, team2 in team_splits(pool):
        first, second, score = _best_lineups(team1, team2, ratings, preferences)
        if best is None or score > best[2]:
            best = (first, second, score)

    first, second, score = best
    return MatchupSuggestion(
        mode="balanced",
        team1=first,
        team2=second,
        rating_difference=rating_difference(first.members, second.members, ratings),
        confidence=min(1.0, score),
    )


def find_rare_matchup(
    player_ids: Sequence[str],
    matches: Iterable[MatchRecord],
    ratings: Mapping[str, float],
    preferences: Optional[Mapping[str, PositionPreference]] = None,
) -> MatchupSuggestion:
    """The split whose six player pairs have shared the fewest matches.

    Positions inside the chosen split follow the balanced quality score.
    """

    pool = check_pool(player_ids)
    preferences = preferences or {}
    counts = pair_counts(matches)
    best = None
    for team1, team2 in team_splits(pool):
        shared = shared_games(team1, team2, counts)
        if best is None or shared < best[2]:
            best = (team1, team2, shared)

    team1, team2, shared = best
    first, second, _ = _best_lineups(team1, team2, ratings, preferences)
    return MatchupSuggestion(
        mode="rare",
        team1=first,
        team2=second,
        rating_difference=rating_difference(first.members, second.members, ratings),
        confidence=1.0 - min(shared / RARITY_SCALE, 1.0),
        shared_games=shared,
    )
