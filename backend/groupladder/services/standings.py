"""Async read views over the ledger.

Each view fetches an ordered match scope at the boundary and hands it to a
pure aggregator. Rating tables, leaderboards and rank changes are memoised in
``stats_cache`` under the group's ledger version, so a new append makes
older entries unreachable.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import stats_cache
from ..config import BASELINE_RATING, K_FACTOR, RATING_CEILING, RATING_FLOOR
from ..exceptions import GroupNotFound, PlayerNotFound
from ..models import FriendGroup, Player, Season
from ..time_utils import coerce_utc
from .ledger import check_players, ledger_version, query_matches, rating_season_id
from .leaderboard import (
    PlayerSeasonStats,
    player_season_stats,
    rank_changes,
    season_leaderboard,
)
from .matchmaking import (
    MatchupSuggestion,
    Mode,
    check_pool,
    find_balanced_matchup,
    find_rare_matchup,
    position_preference,
)
from .rating import RatingHistory, compute_ratings, rating_history
from .relationships import RelationshipStatsData, compute_relationships
from .stats import PositionStats, StreakData, compute_position_stats, compute_streaks

RATING_PARAMS = {
    "k_factor": K_FACTOR,
    "baseline": BASELINE_RATING,
    "floor": RATING_FLOOR,
    "ceiling": RATING_CEILING,
}


async def _require_player(session: AsyncSession, player_id: str) -> Player:
    player = await session.get(Player, player_id)
    if player is None:
        raise PlayerNotFound(player_id)
    return player


async def _rating_table(
    session: AsyncSession,
    group_id: str,
    *,
    season_id: Optional[str] = None,
    as_of: Optional[datetime] = None,
) -> dict[str, float]:
    as_of = coerce_utc(as_of)

    async def compute() -> dict[str, float]:
        matches = await query_matches(
            session, group_id, season_id=season_id, as_of=as_of
        )
        return compute_ratings(matches, **RATING_PARAMS)

    # Point-in-time tables are open ended, so only the live table is kept.
    if as_of is not None:
        return await compute()
    version = await ledger_version(session, group_id)
    key = (group_id, "ratings", season_id, version)
    return await stats_cache.get_or_compute(key, compute)


async def get_rating(
    session: AsyncSession,
    player_id: str,
    *,
    as_of: Optional[datetime] = None,
    season_id: Optional[str] = None,
) -> float:
    """Current rating of a player, replayed from the baseline.

    Ratings restart from the baseline every season. Without ``season_id``
    the group's active (else latest) season is used, which is the scope of
    the ``post_game_rating`` snapshots stored on matches. ``as_of`` drops
    matches created after the given instant.
    """

    player = await _require_player(session, player_id)
    if season_id is None:
        season_id = await rating_season_id(session, player.group_id)
    table = await _rating_table(
        session, player.group_id, season_id=season_id, as_of=as_of
    )
    return table.get(player_id, BASELINE_RATING)


async def get_rating_history(
    session: AsyncSession, player_id: str, *, season_id: Optional[str] = None
) -> RatingHistory:
    player = await _require_player(session, player_id)
    if season_id is None:
        season_id = await rating_season_id(session, player.group_id)
    # Opponents' ratings matter, so the fold needs the whole season.
    matches = await query_matches(session, player.group_id, season_id=season_id)
    return rating_history(player_id, matches, **RATING_PARAMS)


async def get_leaderboard(
    session: AsyncSession, season_id: str, *, match_type: Optional[str] = None
) -> list[PlayerSeasonStats]:
    """Ranked season standings; an unknown season yields an empty list."""

    season = await session.get(Season, season_id)
    if season is None:
        return []

    version = await ledger_version(session, season.group_id)
    key = (season.group_id, "leaderboard", season_id, match_type, version)

    async def compute() -> list[PlayerSeasonStats]:
        matches = await query_matches(
            session, season.group_id, season_id=season_id, match_type=match_type
        )
        return season_leaderboard(
            season_id, matches, match_type=match_type, **RATING_PARAMS
        )

    return await stats_cache.get_or_compute(key, compute)


async def get_rank_changes(
    session: AsyncSession,
    season_id: str,
    *,
    match_type: Optional[str] = None,
    window: int = 5,
) -> dict[str, int]:
    season = await session.get(Season, season_id)
    if season is None:
        return {}

    version = await ledger_version(session, season.group_id)
    key = (season.group_id, "rank_changes", season_id, match_type, window, version)

    async def compute() -> dict[str, int]:
        matches = await query_matches(
            session, season.group_id, season_id=season_id, match_type=match_type
        )
        return rank_changes(
            season_id, matches, window=window, match_type=match_type, **RATING_PARAMS
        )

    return await stats_cache.get_or_compute(key, compute)


async def get_player_season_stats(
    session: AsyncSession, player_id: str, season_id: str
) -> Optional[PlayerSeasonStats]:
    player = await _require_player(session, player_id)
    season = await session.get(Season, season_id)
    if season is None or season.group_id != player.group_id:
        return None
    matches = await query_matches(session, player.group_id, season_id=season_id)
    return player_season_stats(player_id, season_id, matches, **RATING_PARAMS)


async def get_streaks(
    session: AsyncSession, player_id: str, *, season_id: Optional[str] = None
) -> StreakData:
    player = await _require_player(session, player_id)
    matches = await query_matches(
        session, player.group_id, season_id=season_id, player_id=player_id
    )
    return compute_streaks(player_id, matches)


async def get_relationships(
    session: AsyncSession, player_id: str, *, season_id: Optional[str] = None
) -> RelationshipStatsData:
    player = await _require_player(session, player_id)
    matches = await query_matches(
        session, player.group_id, season_id=season_id, player_id=player_id
    )
    return compute_relationships(player_id, matches)


async def get_position_stats(
    session: AsyncSession, player_id: str, *, season_id: Optional[str] = None
) -> PositionStats:
    player = await _require_player(session, player_id)
    matches = await query_matches(
        session,
        player.group_id,
        season_id=season_id,
        player_id=player_id,
        match_type="2v2",
    )
    return compute_position_stats(player_id, matches)


async def suggest_matchup(
    session: AsyncSession,
    group_id: str,
    player_ids: list[str],
    *,
    mode: Mode = "balanced",
    season_id: Optional[str] = None,
) -> MatchupSuggestion:
    """Suggest 2v2 teams from the players who are present.

    Ratings, position preferences and pair history all come from the same
    season scope as ``get_rating``. Raises ``ValidationError`` for a pool
    that is the wrong size or holds players from another group.
    """

    if await session.get(FriendGroup, group_id) is None:
        raise GroupNotFound(group_id)
    pool = check_pool(player_ids)
    await check_players(session, group_id, pool)

    if season_id is None:
        season_id = await rating_season_id(session, group_id)
    ratings = await _rating_table(session, group_id, season_id=season_id)
    matches = await query_matches(session, group_id, season_id=season_id)
    preferences = {
        pid: position_preference(pid, compute_position_stats(pid, matches))
        for pid in pool
    }

    if mode == "rare":
        return find_rare_matchup(pool, matches, ratings, preferences)
    return find_balanced_matchup(pool, ratings, preferences)
