from __future__ import annotations
import uuid
from datetime import datetime
import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from glowboard.db import utcnow
from glowboard.models.challenge import Challenge, ChallengeParticipation
from glowboard.models.user import User
from glowboard.schemas.challenge import WinnerResolution
from glowboard.services.participation import lock_challenge

log = structlog.get_logger()


async def _resolve_locked(session: AsyncSession, challenge_id: uuid.UUID, now: datetime) -> WinnerResolution:
    ch = await lock_challenge(session, challenge_id)
    if not ch:
        return WinnerResolution(challenge_id=challenge_id, outcome="not_found")
    if now < ch.end_date:
        return WinnerResolution(challenge_id=challenge_id, outcome="running")
    if ch.winner_id is not None:
        return WinnerResolution(challenge_id=challenge_id, outcome="already_declared", winner_id=ch.winner_id)

    top = await session.scalar(
        select(ChallengeParticipation)
        .where(
            ChallengeParticipation.challenge_id == challenge_id,
            ChallengeParticipation.status == "completed",
        )
        .order_by(ChallengeParticipation.score.desc(), ChallengeParticipation.completed_at.asc())
        .limit(1)
    )
    if not top:
        return WinnerResolution(challenge_id=challenge_id, outcome="no_entries")

    ch.winner_id = top.user_id
    await session.execute(
        update(User).where(User.id == top.user_id).values(challenge_wins=User.challenge_wins + 1)
    )
    return WinnerResolution(challenge_id=challenge_id, outcome="declared", winner_id=top.user_id)


async def resolve_winner(
    session: AsyncSession, challenge_id: uuid.UUID, now: datetime | None = None
) -> WinnerResolution:
    """
    Declare the winner of an ended challenge. Safe to call any number of times.

    The winner_id write and the challenge_wins increment commit together, so a
    failure leaves neither and a retry starts clean.
    """
    now = now or utcnow()
    try:
        result = await _resolve_locked(session, challenge_id, now)
    except Exception:
        await session.rollback()
        raise
    if result.outcome == "declared":
        await session.commit()
        log.info("winner_declared", challenge_id=str(challenge_id), winner_id=str(result.winner_id))
    else:
        await session.rollback()
    return result


async def due_challenge_ids(session: AsyncSession, now: datetime) -> list[uuid.UUID]:
    q = (
        select(Challenge.id)
        .where(Challenge.end_date <= now, Challenge.winner_id.is_(None))
        .order_by(Challenge.end_date.asc())
    )
    return list((await session.execute(q)).scalars().all())


async def resolve_due_winners(session: AsyncSession, now: datetime | None = None) -> list[WinnerResolution]:
    """Sweep every ended challenge that has no winner yet."""
    now = now or utcnow()
    results = []
    for cid in await due_challenge_ids(session, now):
        try:
            results.append(await resolve_winner(session, cid, now))
        except Exception:
            # left unresolved; the next sweep picks it up again
            log.exception("winner_resolution_failed", challenge_id=str(cid))
    declared = sum(1 for r in results if r.outcome == "declared")
    log.info("winner_sweep", resolved=len(results), declared=declared)
    return results
