from typing import Optional

from pydantic import BaseModel


class ProblemDetail(BaseModel):
    """RFC 7807 compliant error response."""

    type: str = "about:blank"
    title: str
    detail: Optional[str] = None
    status: int
    instance: Optional[str] = None
    code: str


class DomainException(Exception):
    """Error with a fixed problem code, rendered as RFC 7807 by the app."""

    def __init__(
        self,
        status_code: int,
        title: str,
        *,
        code: str,
        detail: str | None = None,
        type_: str = "about:blank",
    ) -> None:
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type = type_
        self.code = code


class PlayerNotFound(DomainException):
    def __init__(self, player_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Player not found",
            detail=f"player '{player_id}' not found",
            code="player_not_found",
        )


class GroupNotFound(DomainException):
    def __init__(self, group_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Group not found",
            detail=f"group '{group_id}' not found",
            code="group_not_found",
        )


class PlayerHasMatches(DomainException):
    def __init__(self, player_id: str) -> None:
        super().__init__(
            status_code=409,
            title="Player has matches",
            detail=f"player '{player_id}' appears in recorded matches and cannot be deleted",
            code="player_has_matches",
        )


class MatchNotFound(DomainException):
    def __init__(self, match_id: str) -> None:
        super().__init__(
            status_code=404,
            title="Match not found",
            detail=f"match '{match_id}' not found",
            code="match_not_found",
        )


class MatchRejected(DomainException):
    """A match that failed validation and was not appended to the ledger."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            status_code=422,
            title="Match rejected",
            detail=reason,
            code="match_validation_error",
        )


class MatchupRejected(DomainException):
    def __init__(self, reason: str) -> None:
        super().__init__(
            status_code=422,
            title="Matchup rejected",
            detail=reason,
            code="matchmaking_validation_error",
        )
