from typing import Any, List, Literal, Optional
from datetime import datetime
from pydantic import BaseModel, Field, field_validator, ConfigDict


class PlayerCreate(BaseModel):
    groupId: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=50)
    avatar: Optional[str] = Field(default=None, max_length=2000)

    model_config = ConfigDict(extra="forbid")

    @field_validator("name", mode="before")
    @classmethod
    def _normalize_name(cls, value: Any) -> Any:
        if isinstance(value, str):
            return " ".join(value.split())
        return value

    @field_validator("avatar", mode="before")
    @classmethod
    def _normalize_avatar(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if not isinstance(value, str):
            raise TypeError("avatar must be a string")
        trimmed = value.strip()
        return trimmed or None


class PlayerOut(BaseModel):
    id: str
    groupId: str
    name: str
    avatar: Optional[str] = None
    createdAt: Optional[datetime] = None


class PlayerListOut(BaseModel):
    players: List[PlayerOut]
    total: int
    limit: int
    offset: int


class MatchCreate(BaseModel):
    groupId: str
    seasonId: Optional[str] = None
    matchType: str
    # Two slots per team; the second stays empty for 1v1.
    team1: List[Optional[str]]
    team2: List[Optional[str]]
    # Scores are checked by the ledger so every rejection shares one error code.
    score1: Any
    score2: Any


class MatchIdOut(BaseModel):
    id: str


class PlayerMatchStatsOut(BaseModel):
    playerId: str
    preGameRating: float
    postGameRating: float
    ratingChange: float


class MatchOut(BaseModel):
    id: str
    seq: int
    groupId: str
    seasonId: str
    matchType: Literal["1v1", "2v2"]
    team1: List[str]
    team2: List[str]
    score1: int
    score2: int
    createdAt: Optional[datetime] = None
    playerStats: List[PlayerMatchStatsOut] = Field(default_factory=list)


class LeaderboardEntryOut(BaseModel):
    rank: int
    playerId: str
    playerName: str
    rating: float
    rankChange: int
    matchesPlayed: int
    wins: int
    losses: int
    goalsFor: int
    goalsAgainst: int
    goalDifference: int
    winRate: float


class LeaderboardOut(BaseModel):
    seasonId: str
    matchType: Optional[str] = None
    leaders: List[LeaderboardEntryOut]
    total: int
    limit: int
    offset: int


class PlayerSeasonStatsOut(BaseModel):
    playerId: str
    seasonId: str
    matchesPlayed: int
    wins: int
    losses: int
    goalsFor: int
    goalsAgainst: int
    goalDifference: int
    winRate: float
    rating: float


class RatingOut(BaseModel):
    playerId: str
    rating: float
    seasonId: Optional[str] = None
    asOf: Optional[datetime] = None


class RatingPointOut(BaseModel):
    matchId: str
    matchNumber: int
    createdAt: Optional[datetime] = None
    rating: float
    change: float
    result: Literal["win", "loss"]
    score: str


class RatingHistoryOut(BaseModel):
    playerId: str
    seasonId: Optional[str] = None
    initial: float
    current: float
    highest: float
    lowest: float
    points: List[RatingPointOut] = Field(default_factory=list)


class StreakOut(BaseModel):
    playerId: str
    currentStreak: int = 0
    streakType: Optional[Literal["win", "loss"]] = None
    bestStreak: int = 0
    worstStreak: int = 0


class RelationshipOut(BaseModel):
    playerId: str
    playerName: Optional[str] = None
    gamesPlayed: int
    wins: int
    losses: int
    winRate: float
    goalDifference: int
    recentForm: List[Literal["W", "L"]] = Field(default_factory=list)


class RelationshipsOut(BaseModel):
    playerId: str
    teammates: List[RelationshipOut] = Field(default_factory=list)
    opponents: List[RelationshipOut] = Field(default_factory=list)
    topTeammate: Optional[RelationshipOut] = None
    worstTeammate: Optional[RelationshipOut] = None
    biggestRival: Optional[RelationshipOut] = None
    easiestOpponent: Optional[RelationshipOut] = None


class PositionStatsOut(BaseModel):
    playerId: str
    gamesAsAttacker: int = 0
    gamesAsDefender: int = 0
    winsAsAttacker: int = 0
    winsAsDefender: int = 0
    lossesAsAttacker: int = 0
    lossesAsDefender: int = 0
    winRateAsAttacker: float = 0.0
    winRateAsDefender: float = 0.0
    preferredPosition: Optional[Literal["attacker", "defender"]] = None


class MatchupRequest(BaseModel):
    groupId: str = Field(..., min_length=1)
    playerIds: List[str]
    mode: Literal["balanced", "rare"] = "balanced"
    seasonId: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class LineupOut(BaseModel):
    attacker: str
    defender: str


class MatchupOut(BaseModel):
    mode: Literal["balanced", "rare"]
    seasonId: Optional[str] = None
    team1: LineupOut
    team2: LineupOut
    ratingDifference: float
    confidence: float
    sharedGames: int = 0
