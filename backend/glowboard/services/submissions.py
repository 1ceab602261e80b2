from __future__ import annotations
import uuid
from datetime import datetime
import structlog
from sqlalchemy import select, update, exists
from sqlalchemy.ext.asyncio import AsyncSession

from glowboard.db import utcnow
from glowboard.errors import ValidationError, NotFound
from glowboard.models.challenge import Challenge
from glowboard.models.submission import ScoreRecord
from glowboard.models.user import User
from glowboard.services.participation import lock_challenge

log = structlog.get_logger()


async def has_submitted(session: AsyncSession, challenge_id: uuid.UUID, user_id: uuid.UUID) -> bool:
    return bool(await session.scalar(
        select(exists().where(ScoreRecord.challenge_id == challenge_id, ScoreRecord.user_id == user_id))
    ))


async def submit_score(
    session: AsyncSession,
    challenge_id: uuid.UUID,
    user_id: uuid.UUID,
    score: float,
    now: datetime | None = None,
) -> tuple[ScoreRecord, bool]:
    """
    Append a scored submission to an open challenge.

    Returns (record, first_submission). participants_count goes up by one only
    on a user's first record for the challenge; every record adds to the total.
    """
    now = now or utcnow()
    if not 0 <= score <= 100:
        raise ValidationError("Score must be between 0 and 100")
    if not await session.get(User, user_id):
        raise NotFound("User not found")
    if not await lock_challenge(session, challenge_id):
        raise NotFound("Challenge not found")

    first = not await has_submitted(session, challenge_id, user_id)
    rec = ScoreRecord(challenge_id=challenge_id, user_id=user_id, score=float(score), created_at=now)
    session.add(rec)
    if first:
        await session.execute(
            update(Challenge)
            .where(Challenge.id == challenge_id)
            .values(participants_count=Challenge.participants_count + 1)
        )
    await session.commit()
    await session.refresh(rec)
    log.info("score_submitted", challenge_id=str(challenge_id), user_id=str(user_id), score=float(score), first=first)
    return rec, first
