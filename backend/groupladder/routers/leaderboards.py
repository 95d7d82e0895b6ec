from typing import Optional

from fastapi import APIRouter, Query, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..models import Player
from ..services import standings
from ..schemas import LeaderboardEntryOut, LeaderboardOut

# Resource-only prefix; no /api or /api/v0 here
router = APIRouter(prefix="/leaderboards", tags=["leaderboards"])

RANK_CHANGE_WINDOW = 5


# GET /api/v0/leaderboards?seasonId=...
@router.get("", response_model=LeaderboardOut)
async def leaderboard(
    seasonId: str = Query(..., description="Season to rank"),
    matchType: Optional[str] = Query(
        None, pattern=r"^(1v1|2v2)$", description="Only count 1v1 or 2v2 matches"
    ),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_session),
):
    rows = await standings.get_leaderboard(session, seasonId, match_type=matchType)
    changes = await standings.get_rank_changes(
        session, seasonId, match_type=matchType, window=RANK_CHANGE_WINDOW
    )
    total = len(rows)
    page = list(enumerate(rows))[offset : offset + limit]

    player_ids = [row.player_id for _, row in page]
    names: dict[str, str] = {}
    if player_ids:
        result = await session.execute(
            select(Player.id, Player.name).where(Player.id.in_(player_ids))
        )
        names = {pid: name for pid, name in result.all()}

    leaders = [
        LeaderboardEntryOut(
            rank=i + 1,
            playerId=row.player_id,
            playerName=names.get(row.player_id, ""),
            rating=row.rating,
            rankChange=changes.get(row.player_id, 0),
            matchesPlayed=row.matches_played,
            wins=row.wins,
            losses=row.losses,
            goalsFor=row.goals_for,
            goalsAgainst=row.goals_against,
            goalDifference=row.goal_difference,
            winRate=row.win_rate,
        )
        for i, row in page
    ]
    return LeaderboardOut(
        seasonId=seasonId,
        matchType=matchType,
        leaders=leaders,
        total=total,
        limit=limit,
        offset=offset,
    )
