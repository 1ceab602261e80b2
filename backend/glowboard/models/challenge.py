from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Float, Text, JSON, Uuid, ForeignKey, UniqueConstraint, Index, func
from glowboard.db import Base, UTCDateTime, utcnow

class Challenge(Base):
    __tablename__ = "challenges"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    creator_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text(), nullable=False)
    theme: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    banner: Mapped[str | None] = mapped_column(String(512), nullable=True)  # URL
    hashtags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    unique_code: Mapped[str] = mapped_column(String(8), unique=True, index=True, nullable=False)  # public share code
    invite_code: Mapped[str | None] = mapped_column(String(10), unique=True, index=True, nullable=True)  # private
    start_date: Mapped[datetime] = mapped_column(UTCDateTime, index=True, nullable=False)
    end_date: Mapped[datetime] = mapped_column(UTCDateTime, index=True, nullable=False)
    participants_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    winning_reward: Mapped[str] = mapped_column(String(200), nullable=False)
    winner_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), index=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_challenges_creator_created", "creator_id", "created_at"),
        Index("ix_challenges_trending", "participants_count", "created_at"),
    )

# NOTE: the tables below carry challenge_id without an FK so that deleting a challenge
# leaves invite, participation and score history in place.

class ChallengeInvite(Base):
    """
    Invite response per (challenge, user).
    response = 'accepted' -> user is in the challenge's participants set
    response = 'declined' -> user is in the challenge's declined set
    One row per pair, so the two sets can never overlap.
    """
    __tablename__ = "challenge_invites"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    challenge_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    response: Mapped[str] = mapped_column(String(16), nullable=False)  # accepted|declined
    responded_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("challenge_id", "user_id", name="uq_invite_challenge_user"),
    )

class ChallengeParticipation(Base):
    __tablename__ = "challenge_participations"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    challenge_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False)
    score: Mapped[float] = mapped_column(Float, nullable=False, default=0, server_default="0")
    status: Mapped[str] = mapped_column(String(16), index=True, nullable=False, default="accepted")  # accepted|completed
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("challenge_id", "user_id", name="uq_participation_challenge_user"),
    )
