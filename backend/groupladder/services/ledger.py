"""Storage boundary for the match ledger.

Appends are the only mutation. Everything else reads ordered
``MatchRecord`` sequences that the pure aggregators consume.
"""

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..cache import stats_cache
from ..config import (
    BASELINE_RATING,
    K_FACTOR,
    MAX_SCORE,
    RATING_CEILING,
    RATING_FLOOR,
)
from ..domain import (
    MATCH_TYPES,
    MatchRecord,
    PlayerMatchStats,
    order_matches,
    team_from_slots,
)
from ..exceptions import GroupNotFound
from ..models import FriendGroup, Match, Player, Season
from ..time_utils import coerce_utc, utcnow
from .rating import apply_match, compute_ratings
from .validation import ValidationError, validate_score_pair, validate_team_slots

logger = logging.getLogger(__name__)


def _stats_to_json(stats: Sequence[PlayerMatchStats]) -> list[dict[str, Any]]:
    return [
        {
            "playerId": s.player_id,
            "preGameRating": s.pre_game_rating,
            "postGameRating": s.post_game_rating,
        }
        for s in stats
    ]


def _stats_from_json(raw: Any) -> tuple[PlayerMatchStats, ...]:
    if not raw:
        return ()
    return tuple(
        PlayerMatchStats(
            player_id=str(item["playerId"]),
            pre_game_rating=float(item["preGameRating"]),
            post_game_rating=float(item["postGameRating"]),
        )
        for item in raw
    )


def record_from_row(row: Match) -> MatchRecord:
    """Convert a stored ``Match`` row into an immutable ``MatchRecord``.

    Raises ``ValueError`` when the row cannot describe a valid match.
    """

    if row.match_type not in MATCH_TYPES:
        raise ValueError(f"unknown match type {row.match_type!r}")
    if not row.team1_player1_id or not row.team2_player1_id:
        raise ValueError("match is missing a first player slot")
    if row.team1_score is None or row.team2_score is None:
        raise ValueError("match is missing a score")
    if row.team1_score < 0 or row.team2_score < 0:
        raise ValueError("match has a negative score")

    team1 = team_from_slots(row.team1_player1_id, row.team1_player2_id)
    team2 = team_from_slots(row.team2_player1_id, row.team2_player2_id)
    expected_size = 1 if row.match_type == "1v1" else 2
    if len(team1.members) != expected_size or len(team2.members) != expected_size:
        raise ValueError(f"team slots do not fit a {row.match_type} match")

    return MatchRecord(
        id=row.id,
        match_type=row.match_type,
        team1=team1,
        team2=team2,
        score1=int(row.team1_score),
        score2=int(row.team2_score),
        group_id=row.group_id,
        season_id=row.season_id,
        created_at=coerce_utc(row.created_at),
        seq=int(row.seq or 0),
        player_stats=_stats_from_json(row.player_stats),
    )


async def current_season_id(session: AsyncSession, group_id: str) -> Optional[str]:
    """Return the id of the group's active season, or ``None``."""

    stmt = (
        select(Season.id)
        .where(Season.group_id == group_id, Season.is_active.is_(True))
        .order_by(Season.season_number.desc())
        .limit(1)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def rating_season_id(session: AsyncSession, group_id: str) -> Optional[str]:
    """Season that stored rating snapshots refer to by default.

    The active season, else the most recent one; ``None`` for a group
    without seasons.
    """

    season_id = await current_season_id(session, group_id)
    if season_id is not None:
        return season_id
    stmt = (
        select(Season.id)
        .where(Season.group_id == group_id)
        .order_by(Season.season_number.desc())
        .limit(1)
    )
    return (await session.execute(stmt)).scalar_one_or_none()


async def fetch_players(session: AsyncSession, group_id: str) -> list[Player]:
    stmt = (
        select(Player)
        .where(Player.group_id == group_id)
        .order_by(Player.name, Player.id)
    )
    return list((await session.execute(stmt)).scalars().all())


async def ledger_version(session: AsyncSession, group_id: str) -> int:
    """Highest ``seq`` recorded for the group; ``0`` for an empty ledger."""

    stmt = select(func.max(Match.seq)).where(Match.group_id == group_id)
    return int((await session.execute(stmt)).scalar() or 0)


def _involves(player_id: str):
    return or_(
        Match.team1_player1_id == player_id,
        Match.team1_player2_id == player_id,
        Match.team2_player1_id == player_id,
        Match.team2_player2_id == player_id,
    )


async def count_player_matches(session: AsyncSession, player_id: str) -> int:
    stmt = select(func.count()).select_from(Match).where(_involves(player_id))
    return int((await session.execute(stmt)).scalar() or 0)


async def query_matches(
    session: AsyncSession,
    group_id: str,
    *,
    season_id: Optional[str] = None,
    player_id: Optional[str] = None,
    match_type: Optional[str] = None,
    as_of: Optional[datetime] = None,
) -> list[MatchRecord]:
    """Return the group's matches in the requested scope, oldest first.

    Rows that cannot be converted are skipped with a warning.
    """

    stmt = select(Match).where(Match.group_id == group_id)
    if season_id is not None:
        stmt = stmt.where(Match.season_id == season_id)
    if player_id is not None:
        stmt = stmt.where(_involves(player_id))
    if match_type is not None:
        stmt = stmt.where(Match.match_type == match_type)
    stmt = stmt.order_by(Match.created_at, Match.seq)

    rows = (await session.execute(stmt)).scalars().all()
    records: list[MatchRecord] = []
    for row in rows:
        try:
            records.append(record_from_row(row))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed match %s: %s", row.id, exc)

    cutoff = coerce_utc(as_of)
    if cutoff is not None:
        records = [
            r for r in records if r.created_at is None or r.created_at <= cutoff
        ]
    return order_matches(records)


async def get_match(session: AsyncSession, match_id: str) -> Optional[MatchRecord]:
    """Return one match, or ``None`` when it is missing or unreadable."""

    row = await session.get(Match, match_id)
    if row is None:
        return None
    try:
        return record_from_row(row)
    except (KeyError, TypeError, ValueError) as exc:
        logger.warning("Skipping malformed match %s: %s", row.id, exc)
        return None


async def _resolve_season(
    session: AsyncSession, group_id: str, season_id: Optional[str]
) -> Season:
    active_id = await current_season_id(session, group_id)
    if season_id is None:
        if active_id is None:
            raise ValidationError("The group has no active season.")
        season_id = active_id

    # Row lock serializes concurrent appends to the same season on PostgreSQL.
    season = (
        await session.execute(
            select(Season).where(Season.id == season_id).with_for_update()
        )
    ).scalar_one_or_none()
    if season is None or season.group_id != group_id:
        raise ValidationError("The season does not belong to this group.")
    if not season.is_active or season.id != active_id:
        raise ValidationError("Matches can only be recorded in the active season.")
    return season


async def check_players(
    session: AsyncSession, group_id: str, player_ids: Sequence[str]
) -> None:
    rows = (
        await session.execute(
            select(Player.id, Player.group_id).where(Player.id.in_(player_ids))
        )
    ).all()
    groups = {pid: gid for pid, gid in rows}
    for pid in player_ids:
        if pid not in groups:
            raise ValidationError(f"Unknown player '{pid}'.")
        if groups[pid] != group_id:
            raise ValidationError(f"Player '{pid}' is not a member of this group.")


async def append_match(
    session: AsyncSession,
    *,
    group_id: str,
    match_type: str,
    team1: Sequence[Optional[str]],
    team2: Sequence[Optional[str]],
    score1: Any,
    score2: Any,
    season_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> MatchRecord:
    """Validate and append one match to the ledger.

    Either the whole record (slots, scores and rating snapshot) is committed
    or ``ValidationError``/``GroupNotFound`` is raised and nothing is written.
    """

    group = await session.get(FriendGroup, group_id)
    if group is None:
        raise GroupNotFound(group_id)

    team_a, team_b = validate_team_slots(match_type, team1, team2)
    supported = group.supported_match_types or list(MATCH_TYPES)
    if match_type not in supported:
        raise ValidationError(
            f"This group does not record {match_type} matches."
        )
    s1, s2 = validate_score_pair(score1, score2, max_value=MAX_SCORE)

    try:
        season = await _resolve_season(session, group_id, season_id)
        await check_players(session, group_id, team_a.members + team_b.members)

        seq = await ledger_version(session, group_id) + 1
        record = MatchRecord(
            id=uuid.uuid4().hex,
            match_type=match_type,
            team1=team_a,
            team2=team_b,
            score1=s1,
            score2=s2,
            group_id=group_id,
            season_id=season.id,
            created_at=coerce_utc(now) or utcnow(),
            seq=seq,
        )

        history = await query_matches(session, group_id, season_id=season.id)
        ratings = compute_ratings(
            history,
            k_factor=K_FACTOR,
            baseline=BASELINE_RATING,
            floor=RATING_FLOOR,
            ceiling=RATING_CEILING,
        )
        changes = apply_match(
            ratings,
            record,
            k_factor=K_FACTOR,
            baseline=BASELINE_RATING,
            floor=RATING_FLOOR,
            ceiling=RATING_CEILING,
        )
        snapshot = tuple(
            PlayerMatchStats(player_id=pid, pre_game_rating=pre, post_game_rating=post)
            for pid, (pre, post) in changes.items()
        )

        session.add(
            Match(
                id=record.id,
                seq=record.seq,
                group_id=group_id,
                season_id=season.id,
                match_type=match_type,
                team1_player1_id=team_a.members[0],
                team1_player2_id=team_a.members[1] if len(team_a.members) > 1 else None,
                team2_player1_id=team_b.members[0],
                team2_player2_id=team_b.members[1] if len(team_b.members) > 1 else None,
                team1_score=s1,
                team2_score=s2,
                created_at=record.created_at,
                player_stats=_stats_to_json(snapshot),
            )
        )
        await session.commit()
    except Exception:
        await session.rollback()
        raise

    await stats_cache.invalidate_groups([group_id])
    logger.info(
        "Recorded %s match %s in group %s (seq=%s, %s-%s)",
        match_type,
        record.id,
        group_id,
        record.seq,
        s1,
        s2,
    )
    return replace(record, player_stats=snapshot)
