from __future__ import annotations
import uuid
from datetime import datetime
import structlog
from sqlalchemy import select, delete, func, exists
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from glowboard.config import settings
from glowboard.db import utcnow
from glowboard.errors import ValidationError, NotFound, Forbidden, CapacityExceeded, ConflictError
from glowboard.models.challenge import Challenge, ChallengeInvite, ChallengeParticipation
from glowboard.services.registry import get_by_invite_code

log = structlog.get_logger()

PAIR_KEY = ["challenge_id", "user_id"]


def _insert(session: AsyncSession, model):
    """INSERT supporting ON CONFLICT for the bound dialect."""
    if session.get_bind().dialect.name == "postgresql":
        return pg_insert(model)
    return sqlite_insert(model)


async def lock_challenge(session: AsyncSession, challenge_id: uuid.UUID) -> Challenge | None:
    """Row-lock the challenge for the rest of the transaction (no-op on SQLite)."""
    return await session.scalar(
        select(Challenge)
        .where(Challenge.id == challenge_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


async def _set_invite_response(session: AsyncSession, challenge_id: uuid.UUID, user_id: uuid.UUID, response: str, now: datetime) -> None:
    stmt = _insert(session, ChallengeInvite).values(
        id=uuid.uuid4(), challenge_id=challenge_id, user_id=user_id, response=response, responded_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=PAIR_KEY,
        set_={"response": response, "responded_at": now},
    )
    try:
        await session.execute(stmt)
    except IntegrityError as e:
        raise ConflictError(f"Concurrent invite update for challenge {challenge_id}") from e


async def _ensure_participation(session: AsyncSession, challenge_id: uuid.UUID, user_id: uuid.UUID, now: datetime) -> None:
    # Existing records (accepted or completed) are left untouched: re-accepting never downgrades.
    stmt = _insert(session, ChallengeParticipation).values(
        id=uuid.uuid4(), challenge_id=challenge_id, user_id=user_id,
        score=0, status="accepted", created_at=now, updated_at=now,
    ).on_conflict_do_nothing(index_elements=PAIR_KEY)
    try:
        await session.execute(stmt)
    except IntegrityError as e:
        raise ConflictError(f"Concurrent participation insert for challenge {challenge_id}") from e


async def invite_response(session: AsyncSession, challenge_id: uuid.UUID, user_id: uuid.UUID) -> str | None:
    return await session.scalar(
        select(ChallengeInvite.response).where(
            ChallengeInvite.challenge_id == challenge_id, ChallengeInvite.user_id == user_id
        )
    )


async def accepted_count(session: AsyncSession, challenge_id: uuid.UUID) -> int:
    total = await session.scalar(
        select(func.count()).select_from(ChallengeInvite).where(
            ChallengeInvite.challenge_id == challenge_id, ChallengeInvite.response == "accepted"
        )
    )
    return int(total or 0)


async def accept_invite(
    session: AsyncSession,
    invite_code: str,
    user_id: uuid.UUID,
    now: datetime | None = None,
) -> Challenge:
    """
    Join a private challenge. Idempotent for users already in it.

    The cap check and the write happen under a lock on the challenge row, so
    concurrent accepts near the cap cannot overshoot it.
    """
    now = now or utcnow()
    ch = await get_by_invite_code(session, invite_code)
    challenge_id = ch.id
    for attempt in range(2):
        ch = await lock_challenge(session, challenge_id)
        if ch is None:
            raise NotFound("Challenge not found")
        if await invite_response(session, challenge_id, user_id) != "accepted":
            if await accepted_count(session, challenge_id) >= settings.challenge_max_participants:
                await session.rollback()
                raise CapacityExceeded(
                    f"This challenge already has the maximum number of participants ({settings.challenge_max_participants})"
                )
        try:
            await _set_invite_response(session, challenge_id, user_id, "accepted", now)
            await _ensure_participation(session, challenge_id, user_id, now)
        except ConflictError:
            await session.rollback()
            if attempt:
                raise
            continue
        await session.commit()
        break
    log.info("invite_accepted", challenge_id=str(challenge_id), user_id=str(user_id))
    return ch


async def decline_invite(
    session: AsyncSession,
    invite_code: str,
    user_id: uuid.UUID,
    now: datetime | None = None,
) -> Challenge:
    """Leave (or refuse) a private challenge. Any participation record and its score is dropped."""
    now = now or utcnow()
    ch = await get_by_invite_code(session, invite_code)
    await _set_invite_response(session, ch.id, user_id, "declined", now)
    await session.execute(
        delete(ChallengeParticipation).where(
            ChallengeParticipation.challenge_id == ch.id, ChallengeParticipation.user_id == user_id
        )
    )
    await session.commit()
    log.info("invite_declined", challenge_id=str(ch.id), user_id=str(user_id))
    return ch


async def get_participation(session: AsyncSession, challenge_id: uuid.UUID, user_id: uuid.UUID) -> ChallengeParticipation | None:
    return await session.scalar(
        select(ChallengeParticipation).where(
            ChallengeParticipation.challenge_id == challenge_id, ChallengeParticipation.user_id == user_id
        )
    )


async def record_score(
    session: AsyncSession,
    challenge_id: uuid.UUID,
    user_id: uuid.UUID,
    score: float,
    now: datetime | None = None,
) -> ChallengeParticipation:
    """
    Store a scored submission for an invite-mode participant.

    Requires an accepted/completed participation record and current membership.
    The new score replaces any earlier one (last write wins).
    """
    now = now or utcnow()
    if not 0 <= score <= 100:
        raise ValidationError("Score must be between 0 and 100")
    if not await session.get(Challenge, challenge_id):
        raise NotFound("Challenge not found")

    participation = await session.scalar(
        select(ChallengeParticipation)
        .where(ChallengeParticipation.challenge_id == challenge_id, ChallengeParticipation.user_id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    is_member = await session.scalar(
        select(exists().where(
            ChallengeInvite.challenge_id == challenge_id,
            ChallengeInvite.user_id == user_id,
            ChallengeInvite.response == "accepted",
        ))
    )
    if not participation or participation.status not in ("accepted", "completed") or not is_member:
        await session.rollback()
        raise Forbidden("You must accept the challenge before submitting a score")

    participation.status = "completed"
    participation.score = float(score)
    participation.completed_at = now
    participation.updated_at = now
    await session.commit()
    await session.refresh(participation)
    log.info("participation_completed", challenge_id=str(challenge_id), user_id=str(user_id), score=float(score))
    return participation
