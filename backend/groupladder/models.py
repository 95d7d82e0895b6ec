from sqlalchemy import (
    Column,
    String,
    DateTime,
    ForeignKey,
    JSON,
    Integer,
    Boolean,
    Index,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from .db import Base


class FriendGroup(Base):
    __tablename__ = "friend_group"
    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    sport_type = Column(String, nullable=False, default="foosball")
    # e.g. ["1v1", "2v2"]
    supported_match_types = Column(
        JSON().with_variant(JSONB, "postgresql"), nullable=False
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Season(Base):
    __tablename__ = "season"
    id = Column(String, primary_key=True)
    group_id = Column(String, ForeignKey("friend_group.id"), nullable=False)
    name = Column(String, nullable=False)
    season_number = Column(Integer, nullable=False)
    is_active = Column(Boolean, nullable=False, default=False)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "group_id", "season_number", name="uq_season_group_id_season_number"
        ),
        Index("ix_season_group_id_is_active", "group_id", "is_active"),
    )


class Player(Base):
    __tablename__ = "player"
    id = Column(String, primary_key=True)
    group_id = Column(String, ForeignKey("friend_group.id"), nullable=False)
    name = Column(String, nullable=False)
    avatar = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (Index("ix_player_group_id", "group_id"),)


class Match(Base):
    """One immutable ledger entry.

    Slot columns hold player ids; the second slot of each team is empty for
    1v1 matches. ``seq`` is the per-group insertion counter used to break
    timestamp ties. ``player_stats`` stores the rating snapshot taken at
    append time as ``[{"playerId", "preGameRating", "postGameRating"}]``.
    """

    __tablename__ = "match"
    id = Column(String, primary_key=True)
    seq = Column(Integer, nullable=False)
    group_id = Column(String, ForeignKey("friend_group.id"), nullable=False)
    season_id = Column(String, ForeignKey("season.id"), nullable=False)
    match_type = Column(String, nullable=False)  # "1v1" | "2v2"
    team1_player1_id = Column(String, ForeignKey("player.id"), nullable=False)
    team1_player2_id = Column(String, ForeignKey("player.id"), nullable=True)
    team2_player1_id = Column(String, ForeignKey("player.id"), nullable=False)
    team2_player2_id = Column(String, ForeignKey("player.id"), nullable=True)
    team1_score = Column(Integer, nullable=False)
    team2_score = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=True)
    player_stats = Column(JSON().with_variant(JSONB, "postgresql"), nullable=True)

    __table_args__ = (
        UniqueConstraint("group_id", "seq", name="uq_match_group_id_seq"),
        Index("ix_match_season_id_created_at", "season_id", "created_at"),
    )
