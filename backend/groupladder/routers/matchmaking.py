from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..db import get_session
from ..exceptions import MatchupRejected, ProblemDetail
from ..schemas import LineupOut, MatchupOut, MatchupRequest
from ..services import ledger, standings
from ..services.validation import ValidationError

router = APIRouter(
    prefix="/matchmaking",
    tags=["matchmaking"],
    responses={404: {"model": ProblemDetail}, 422: {"model": ProblemDetail}},
)


# POST /api/v0/matchmaking
@router.post("", response_model=MatchupOut)
async def suggest_matchup(
    body: MatchupRequest,
    session: AsyncSession = Depends(get_session),
) -> MatchupOut:
    season_id = body.seasonId
    try:
        if season_id is None:
            season_id = await ledger.rating_season_id(session, body.groupId)
        suggestion = await standings.suggest_matchup(
            session,
            body.groupId,
            body.playerIds,
            mode=body.mode,
            season_id=season_id,
        )
    except ValidationError as exc:
        raise MatchupRejected(exc.detail) from exc
    return MatchupOut(
        mode=suggestion.mode,
        seasonId=season_id,
        team1=LineupOut(
            attacker=suggestion.team1.attacker, defender=suggestion.team1.defender
        ),
        team2=LineupOut(
            attacker=suggestion.team2.attacker, defender=suggestion.team2.defender
        ),
        ratingDifference=suggestion.rating_difference,
        confidence=suggestion.confidence,
        sharedGames=suggestion.shared_games,
    )
