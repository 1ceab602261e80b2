from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Float, Uuid, ForeignKey, Index, func
from glowboard.db import Base, UTCDateTime, utcnow


class ScoreRecord(Base):
    """One scored selfie/video submission to an open challenge. Summed per user on the public leaderboard."""
    __tablename__ = "score_records"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    # no FK: records outlive a deleted challenge
    challenge_id: Mapped[uuid.UUID] = mapped_column(Uuid, index=True, nullable=False)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
    )

    score: Mapped[float] = mapped_column(Float, nullable=False)  # 0..100
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow, server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_score_records_challenge_user", "challenge_id", "user_id"),
    )
