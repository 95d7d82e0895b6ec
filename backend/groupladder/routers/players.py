import logging
import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..cache import stats_cache
from ..models import FriendGroup, Player
from ..schemas import (
    PlayerCreate,
    PlayerOut,
    PlayerListOut,
    PlayerSeasonStatsOut,
    PositionStatsOut,
    RatingHistoryOut,
    RatingOut,
    RatingPointOut,
    RelationshipOut,
    RelationshipsOut,
    StreakOut,
)
from ..exceptions import GroupNotFound, PlayerHasMatches, PlayerNotFound, ProblemDetail
from ..services import ledger, standings
from ..services.relationships import RelationshipStats
from ..time_utils import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/players",
    tags=["players"],
    responses={404: {"model": ProblemDetail}, 409: {"model": ProblemDetail}},
)


def _player_out(p: Player) -> PlayerOut:
    return PlayerOut(
        id=p.id,
        groupId=p.group_id,
        name=p.name,
        avatar=p.avatar,
        createdAt=p.created_at,
    )


@router.post("", response_model=PlayerOut)
async def create_player(
    body: PlayerCreate,
    session: AsyncSession = Depends(get_session),
):
    if await session.get(FriendGroup, body.groupId) is None:
        raise GroupNotFound(body.groupId)
    p = Player(
        id=uuid.uuid4().hex,
        group_id=body.groupId,
        name=body.name,
        avatar=body.avatar,
        created_at=utcnow(),
    )
    session.add(p)
    await session.commit()
    return _player_out(p)


@router.get("", response_model=PlayerListOut)
async def list_players(
    groupId: str,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
):
    if await session.get(FriendGroup, groupId) is None:
        raise GroupNotFound(groupId)
    stmt = (
        select(Player)
        .where(Player.group_id == groupId)
        .order_by(Player.name, Player.id)
        .limit(limit)
        .offset(offset)
    )
    count_stmt = select(func.count()).select_from(Player).where(Player.group_id == groupId)
    total = (await session.execute(count_stmt)).scalar() or 0
    players = (await session.execute(stmt)).scalars().all()
    return PlayerListOut(
        players=[_player_out(p) for p in players],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/{player_id}", response_model=PlayerOut)
async def get_player(player_id: str, session: AsyncSession = Depends(get_session)):
    p = await session.get(Player, player_id)
    if not p:
        raise PlayerNotFound(player_id)
    return _player_out(p)


@router.delete("/{player_id}", status_code=204)
async def delete_player(player_id: str, session: AsyncSession = Depends(get_session)):
    p = await session.get(Player, player_id)
    if not p:
        raise PlayerNotFound(player_id)
    # Players with match history stay in the ledger for good.
    if await ledger.count_player_matches(session, player_id):
        raise PlayerHasMatches(player_id)
    group_id = p.group_id
    await session.delete(p)
    await session.commit()
    await stats_cache.invalidate_groups([group_id])
    logger.info("Deleted player %s from group %s", player_id, group_id)
    return Response(status_code=204)


@router.get("/{player_id}/rating", response_model=RatingOut)
async def player_rating(
    player_id: str,
    asOf: Optional[datetime] = None,
    seasonId: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    rating = await standings.get_rating(
        session, player_id, as_of=asOf, season_id=seasonId
    )
    if seasonId is None:
        player = await session.get(Player, player_id)
        seasonId = await ledger.rating_season_id(session, player.group_id)
    return RatingOut(playerId=player_id, rating=rating, seasonId=seasonId, asOf=asOf)


@router.get("/{player_id}/rating-history", response_model=RatingHistoryOut)
async def player_rating_history(
    player_id: str,
    seasonId: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    history = await standings.get_rating_history(session, player_id, season_id=seasonId)
    if seasonId is None:
        player = await session.get(Player, player_id)
        seasonId = await ledger.rating_season_id(session, player.group_id)
    return RatingHistoryOut(
        playerId=player_id,
        seasonId=seasonId,
        initial=history.initial,
        current=history.current,
        highest=history.highest,
        lowest=history.lowest,
        points=[
            RatingPointOut(
                matchId=pt.match_id,
                matchNumber=pt.match_number,
                createdAt=pt.created_at,
                rating=pt.rating,
                change=pt.change,
                result=pt.result,
                score=pt.score,
            )
            for pt in history.points
        ],
    )


@router.get("/{player_id}/streaks", response_model=StreakOut)
async def player_streaks(
    player_id: str,
    seasonId: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    streaks = await standings.get_streaks(session, player_id, season_id=seasonId)
    return StreakOut(
        playerId=player_id,
        currentStreak=streaks.current_streak,
        streakType=streaks.streak_type,
        bestStreak=streaks.best_streak,
        worstStreak=streaks.worst_streak,
    )


@router.get("/{player_id}/relationships", response_model=RelationshipsOut)
async def player_relationships(
    player_id: str,
    seasonId: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    data = await standings.get_relationships(session, player_id, season_id=seasonId)
    player = await session.get(Player, player_id)
    names = {p.id: p.name for p in await ledger.fetch_players(session, player.group_id)}

    def _out(rel: Optional[RelationshipStats]) -> Optional[RelationshipOut]:
        if rel is None:
            return None
        return RelationshipOut(
            playerId=rel.player_id,
            playerName=names.get(rel.player_id),
            gamesPlayed=rel.games_played,
            wins=rel.wins,
            losses=rel.losses,
            winRate=rel.win_rate,
            goalDifference=rel.goal_difference,
            recentForm=rel.recent_form,
        )

    return RelationshipsOut(
        playerId=player_id,
        teammates=[_out(r) for r in data.teammates],
        opponents=[_out(r) for r in data.opponents],
        topTeammate=_out(data.top_teammate),
        worstTeammate=_out(data.worst_teammate),
        biggestRival=_out(data.biggest_rival),
        easiestOpponent=_out(data.easiest_opponent),
    )


@router.get("/{player_id}/positions", response_model=PositionStatsOut)
async def player_positions(
    player_id: str,
    seasonId: Optional[str] = None,
    session: AsyncSession = Depends(get_session),
):
    stats = await standings.get_position_stats(session, player_id, season_id=seasonId)
    return PositionStatsOut(
        playerId=player_id,
        gamesAsAttacker=stats.games_as_attacker,
        gamesAsDefender=stats.games_as_defender,
        winsAsAttacker=stats.wins_as_attacker,
        winsAsDefender=stats.wins_as_defender,
        lossesAsAttacker=stats.losses_as_attacker,
        lossesAsDefender=stats.losses_as_defender,
        winRateAsAttacker=stats.win_rate_as_attacker,
        winRateAsDefender=stats.win_rate_as_defender,
        preferredPosition=stats.preferred_position,
    )


@router.get("/{player_id}/season-stats", response_model=PlayerSeasonStatsOut)
async def player_season_stats(
    player_id: str,
    seasonId: str,
    session: AsyncSession = Depends(get_session),
):
    stats = await standings.get_player_season_stats(session, player_id, seasonId)
    if stats is None:
        # No season presence: an all-zero row at the baseline rating.
        return PlayerSeasonStatsOut(
            playerId=player_id,
            seasonId=seasonId,
            matchesPlayed=0,
            wins=0,
            losses=0,
            goalsFor=0,
            goalsAgainst=0,
            goalDifference=0,
            winRate=0.0,
            rating=standings.RATING_PARAMS["baseline"],
        )
    return PlayerSeasonStatsOut(
        playerId=stats.player_id,
        seasonId=stats.season_id,
        matchesPlayed=stats.matches_played,
        wins=stats.wins,
        losses=stats.losses,
        goalsFor=stats.goals_for,
        goalsAgainst=stats.goals_against,
        goalDifference=stats.goal_difference,
        winRate=stats.win_rate,
        rating=stats.rating,
    )
