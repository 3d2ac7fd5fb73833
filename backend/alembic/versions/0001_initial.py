from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "player",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("rating", sa.Integer(), server_default="1500", nullable=False),
        sa.Column("matches_played", sa.Integer(), server_default="0", nullable=False),
        sa.Column("wins", sa.Integer(), server_default="0", nullable=False),
        sa.Column("losses", sa.Integer(), server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "uq_player_name_lower", "player", [sa.text("lower(name)")], unique=True
    )
    op.create_index("ix_player_rating", "player", ["rating"])

    op.create_table(
        "match",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("team_a_player_1_id", sa.String(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("team_a_player_2_id", sa.String(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("team_b_player_1_id", sa.String(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("team_b_player_2_id", sa.String(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("winning_team", sa.String(length=1), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("winning_team IN ('A', 'B')", name="ck_match_winning_team"),
    )
    op.create_index("ix_match_created_at", "match", ["created_at"])

    op.create_table(
        "rating_history",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("player_id", sa.String(), sa.ForeignKey("player.id"), nullable=False),
        sa.Column("match_id", sa.String(), sa.ForeignKey("match.id"), nullable=False),
        sa.Column("rating_before", sa.Integer(), nullable=False),
        sa.Column("rating_after", sa.Integer(), nullable=False),
        sa.Column("rating_change", sa.Integer(), nullable=False),
        sa.Column("won", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index(
        "ix_rating_history_player_created",
        "rating_history",
        ["player_id", "created_at"],
    )
    op.create_index("ix_rating_history_match", "rating_history", ["match_id"])

def downgrade():
    op.drop_index("ix_rating_history_match", table_name="rating_history")
    op.drop_index("ix_rating_history_player_created", table_name="rating_history")
    op.drop_table("rating_history")
    op.drop_index("ix_match_created_at", table_name="match")
    op.drop_table("match")
    op.drop_index("ix_player_rating", table_name="player")
    op.drop_index("uq_player_name_lower", table_name="player")
    op.drop_table("player")
