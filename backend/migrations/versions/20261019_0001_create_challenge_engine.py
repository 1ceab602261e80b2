from __future__ import annotations
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("username", sa.String(length=32), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("profile_image", sa.String(length=512), nullable=True),
        sa.Column("challenges_created", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("challenge_wins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "challenges",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("creator_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("theme", sa.String(length=64), nullable=False),
        sa.Column("banner", sa.String(length=512), nullable=True),
        sa.Column("hashtags", sa.JSON(), nullable=False),
        sa.Column("unique_code", sa.String(length=8), nullable=False),
        sa.Column("invite_code", sa.String(length=10), nullable=True),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("participants_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("winning_reward", sa.String(length=200), nullable=False),
        sa.Column("winner_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("end_date > start_date", name="ck_challenges_dates"),
        sa.CheckConstraint("participants_count >= 0", name="ck_challenges_participants_nonneg"),
    )
    op.create_index("ix_challenges_creator_id", "challenges", ["creator_id"])
    op.create_index("ix_challenges_theme", "challenges", ["theme"])
    op.create_index("ix_challenges_unique_code", "challenges", ["unique_code"], unique=True)
    op.create_index("ix_challenges_invite_code", "challenges", ["invite_code"], unique=True)
    op.create_index("ix_challenges_start_date", "challenges", ["start_date"])
    op.create_index("ix_challenges_end_date", "challenges", ["end_date"])
    op.create_index("ix_challenges_winner_id", "challenges", ["winner_id"])
    op.create_index("ix_challenges_creator_created", "challenges", ["creator_id", "created_at"])
    op.create_index("ix_challenges_trending", "challenges", ["participants_count", "created_at"])

    # challenge_id carries no FK on the history tables below
    op.create_table(
        "challenge_invites",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("challenge_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("response", sa.String(length=16), nullable=False),
        sa.Column("responded_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("challenge_id", "user_id", name="uq_invite_challenge_user"),
        sa.CheckConstraint("response IN ('accepted','declined')", name="ck_invite_response"),
    )
    op.create_index("ix_challenge_invites_challenge_id", "challenge_invites", ["challenge_id"])
    op.create_index("ix_challenge_invites_user_id", "challenge_invites", ["user_id"])

    op.create_table(
        "challenge_participations",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("challenge_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("score", sa.Float(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("challenge_id", "user_id", name="uq_participation_challenge_user"),
        sa.CheckConstraint("status IN ('accepted','completed')", name="ck_participation_status"),
        sa.CheckConstraint("score >= 0 AND score <= 100", name="ck_participation_score_range"),
    )
    op.create_index("ix_challenge_participations_challenge_id", "challenge_participations", ["challenge_id"])
    op.create_index("ix_challenge_participations_user_id", "challenge_participations", ["user_id"])
    op.create_index("ix_challenge_participations_status", "challenge_participations", ["status"])

    op.create_table(
        "score_records",
        sa.Column("id", sa.Uuid(), primary_key=True, nullable=False),
        sa.Column("challenge_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("score", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("score >= 0 AND score <= 100", name="ck_score_records_range"),
    )
    op.create_index("ix_score_records_challenge_id", "score_records", ["challenge_id"])
    op.create_index("ix_score_records_user_id", "score_records", ["user_id"])
    op.create_index("ix_score_records_challenge_user", "score_records", ["challenge_id", "user_id"])

def downgrade() -> None:
    op.drop_table("score_records")
    op.drop_table("challenge_participations")
    op.drop_table("challenge_invites")
    op.drop_table("challenges")
    op.drop_table("users")
