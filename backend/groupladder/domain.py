"""Immutable match records shared by the ledger and every derived view."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Literal, Optional, Union

from .time_utils import coerce_utc

MatchType = Literal["1v1", "2v2"]
MATCH_TYPES: tuple[str, ...] = ("1v1", "2v2")

_EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class Solo:
    player_id: str

    @property
    def members(self) -> tuple[str, ...]:
        return (self.player_id,)


@dataclass(frozen=True)
class Duo:
    first: str
    second: str

    @property
    def members(self) -> tuple[str, ...]:
        return (self.first, self.second)


Team = Union[Solo, Duo]


def team_from_slots(first: str, second: str | None) -> Team:
    """Build a team from the two nullable storage slots of a side."""

    if second is None:
        return Solo(first)
    return Duo(first, second)


@dataclass(frozen=True)
class PlayerMatchStats:
    """Rating snapshot taken for one participant when a match was appended."""

    player_id: str
    pre_game_rating: float
    post_game_rating: float

    @property
    def rating_change(self) -> float:
        return self.post_game_rating - self.pre_game_rating


@dataclass(frozen=True)
class MatchRecord:
    id: str
    match_type: MatchType
    team1: Team
    team2: Team
    score1: int
    score2: int
    group_id: str
    season_id: str
    created_at: Optional[datetime] = None
    seq: int = 0
    player_stats: tuple[PlayerMatchStats, ...] = field(default_factory=tuple)

    @property
    def participants(self) -> tuple[str, ...]:
        return self.team1.members + self.team2.members

    def team(self, side: int) -> Team:
        return self.team1 if side == 1 else self.team2

    def involves(self, player_id: str) -> bool:
        return player_id in self.participants

    def side_of(self, player_id: str) -> int | None:
        if player_id in self.team1.members:
            return 1
        if player_id in self.team2.members:
            return 2
        return None

    @property
    def is_tie(self) -> bool:
        return self.score1 == self.score2

    @property
    def winning_side(self) -> int:
        # A tied score can only come from legacy or imported rows; it is
        # always awarded to team 2.
        return 1 if self.score1 > self.score2 else 2

    def won_by(self, player_id: str) -> bool:
        return self.side_of(player_id) == self.winning_side

    def goals_for(self, player_id: str) -> int:
        side = self.side_of(player_id)
        if side == 1:
            return self.score1
        if side == 2:
            return self.score2
        return 0

    def goals_against(self, player_id: str) -> int:
        side = self.side_of(player_id)
        if side == 1:
            return self.score2
        if side == 2:
            return self.score1
        return 0

    def teammate_of(self, player_id: str) -> str | None:
        side = self.side_of(player_id)
        if side is None:
            return None
        for member in self.team(side).members:
            if member != player_id:
                return member
        return None

    def opponents_of(self, player_id: str) -> tuple[str, ...]:
        side = self.side_of(player_id)
        if side is None:
            return ()
        return self.team(2 if side == 1 else 1).members

    def stats_for(self, player_id: str) -> PlayerMatchStats | None:
        return next((s for s in self.player_stats if s.player_id == player_id), None)


def chronological_key(match: MatchRecord) -> tuple[datetime, int]:
    return (coerce_utc(match.created_at) or _EARLIEST, match.seq)


def order_matches(matches: Iterable[MatchRecord]) -> list[MatchRecord]:
    """Return ``matches`` oldest first.

    Ordering is by creation timestamp; records without a timestamp sort before
    every timestamped record and equal timestamps fall back to ledger
    insertion order (``seq``).
    """

    return sorted(matches, key=chronological_key)


def matches_for_player(
    player_id: str, matches: Iterable[MatchRecord]
) -> list[MatchRecord]:
    return [m for m in matches if m.involves(player_id)]
