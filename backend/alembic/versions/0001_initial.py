from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade():
    op.create_table(
        "friend_group",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("sport_type", sa.String(), nullable=False),
        sa.Column("supported_match_types", JSON_TYPE, nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_table(
        "season",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "group_id", sa.String(), sa.ForeignKey("friend_group.id"), nullable=False
        ),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("season_number", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint(
            "group_id", "season_number", name="uq_season_group_id_season_number"
        ),
    )
    op.create_index(
        "ix_season_group_id_is_active", "season", ["group_id", "is_active"]
    )
    op.create_table(
        "player",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column(
            "group_id", sa.String(), sa.ForeignKey("friend_group.id"), nullable=False
        ),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("avatar", sa.String(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_player_group_id", "player", ["group_id"])
    op.create_table(
        "match",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("seq", sa.Integer(), nullable=False),
        sa.Column(
            "group_id", sa.String(), sa.ForeignKey("friend_group.id"), nullable=False
        ),
        sa.Column("season_id", sa.String(), sa.ForeignKey("season.id"), nullable=False),
        sa.Column("match_type", sa.String(), nullable=False),
        sa.Column(
            "team1_player1_id", sa.String(), sa.ForeignKey("player.id"), nullable=False
        ),
        sa.Column(
            "team1_player2_id", sa.String(), sa.ForeignKey("player.id"), nullable=True
        ),
        sa.Column(
            "team2_player1_id", sa.String(), sa.ForeignKey("player.id"), nullable=False
        ),
        sa.Column(
            "team2_player2_id", sa.String(), sa.ForeignKey("player.id"), nullable=True
        ),
        sa.Column("team1_score", sa.Integer(), nullable=False),
        sa.Column("team2_score", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("player_stats", JSON_TYPE, nullable=True),
        sa.UniqueConstraint("group_id", "seq", name="uq_match_group_id_seq"),
    )
    op.create_index(
        "ix_match_season_id_created_at", "match", ["season_id", "created_at"]
    )


def downgrade():
    op.drop_index("ix_match_season_id_created_at", table_name="match")
    op.drop_table("match")
    op.drop_index("ix_player_group_id", table_name="player")
    op.drop_table("player")
    op.drop_index("ix_season_group_id_is_active", table_name="season")
    op.drop_table("season")
    op.drop_table("friend_group")
