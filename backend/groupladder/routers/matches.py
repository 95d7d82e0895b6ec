from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..domain import MatchRecord
from ..exceptions import GroupNotFound, MatchNotFound, MatchRejected, ProblemDetail
from ..models import FriendGroup
from ..schemas import MatchCreate, MatchIdOut, MatchOut, PlayerMatchStatsOut
from ..services import ledger
from ..services.validation import ValidationError

# Resource-only prefix; versioning is added in main.py
router = APIRouter(
    prefix="/matches",
    tags=["matches"],
    responses={404: {"model": ProblemDetail}, 422: {"model": ProblemDetail}},
)


def match_out(record: MatchRecord) -> MatchOut:
    return MatchOut(
        id=record.id,
        seq=record.seq,
        groupId=record.group_id,
        seasonId=record.season_id,
        matchType=record.match_type,
        team1=list(record.team1.members),
        team2=list(record.team2.members),
        score1=record.score1,
        score2=record.score2,
        createdAt=record.created_at,
        playerStats=[
            PlayerMatchStatsOut(
                playerId=s.player_id,
                preGameRating=s.pre_game_rating,
                postGameRating=s.post_game_rating,
                ratingChange=s.rating_change,
            )
            for s in record.player_stats
        ],
    )


# POST /api/v0/matches
@router.post("", response_model=MatchIdOut)
async def record_match(
    body: MatchCreate,
    session: AsyncSession = Depends(get_session),
) -> MatchIdOut:
    try:
        record = await ledger.append_match(
            session,
            group_id=body.groupId,
            season_id=body.seasonId,
            match_type=body.matchType,
            team1=body.team1,
            team2=body.team2,
            score1=body.score1,
            score2=body.score2,
        )
    except ValidationError as exc:
        raise MatchRejected(exc.detail) from exc
    return MatchIdOut(id=record.id)


# GET /api/v0/matches?groupId=...
@router.get("", response_model=list[MatchOut])
async def list_matches(
    groupId: str,
    seasonId: Optional[str] = None,
    playerId: Optional[str] = None,
    matchType: Optional[str] = Query(None, pattern=r"^(1v1|2v2)$"),
    session: AsyncSession = Depends(get_session),
):
    if await session.get(FriendGroup, groupId) is None:
        raise GroupNotFound(groupId)
    records = await ledger.query_matches(
        session,
        groupId,
        season_id=seasonId,
        player_id=playerId,
        match_type=matchType,
    )
    return [match_out(r) for r in records]


# GET /api/v0/matches/{mid}
@router.get("/{mid}", response_model=MatchOut)
async def get_match(mid: str, session: AsyncSession = Depends(get_session)):
    record = await ledger.get_match(session, mid)
    if record is None:
        raise MatchNotFound(mid)
    return match_out(record)
