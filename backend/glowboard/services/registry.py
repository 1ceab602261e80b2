from __future__ import annotations
import uuid
from datetime import datetime, timedelta
import structlog
from sqlalchemy import select, update, func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from glowboard.config import settings
from glowboard.db import utcnow
from glowboard.errors import ValidationError, NotFound, Forbidden, RateLimitExceeded, CodeGenerationExhausted
from glowboard.models.challenge import Challenge
from glowboard.models.user import User
from glowboard.schemas.challenge import ChallengeCreate, ChallengeUpdate
from glowboard.services.codes import allocate_code, normalize_code, is_well_formed

log = structlog.get_logger()

ALLOWED_DURATIONS = (1, 3, 7)
RATE_WINDOW = timedelta(hours=24)

# (min, max) length after trimming
TEXT_LIMITS = {
    "title": (3, 100),
    "description": (1, 1000),
    "theme": (1, 64),
    "winning_reward": (3, 200),
}


def _checked_text(name: str, value: str | None) -> str:
    lo, hi = TEXT_LIMITS[name]
    text = (value or "").strip()
    if not lo <= len(text) <= hi:
        label = name.replace("_", " ").capitalize()
        raise ValidationError(f"{label} must be between {lo} and {hi} characters")
    return text


def compute_runtime_state(ch: Challenge, now: datetime) -> str:
    if now < ch.start_date:
        return "upcoming"
    if ch.start_date <= now <= ch.end_date:
        return "active"
    return "ended"


async def _bump_challenges_created(session: AsyncSession, user_id: uuid.UUID, delta: int) -> None:
    await session.execute(
        update(User).where(User.id == user_id).values(challenges_created=User.challenges_created + delta)
    )


async def recent_challenge_count(session: AsyncSession, creator_id: uuid.UUID, now: datetime) -> int:
    """Challenges this creator made in the rolling window ending at `now`."""
    total = await session.scalar(
        select(func.count()).select_from(Challenge).where(
            Challenge.creator_id == creator_id,
            Challenge.created_at > now - RATE_WINDOW,
        )
    )
    return int(total or 0)


async def create_challenge(
    session: AsyncSession,
    creator_id: uuid.UUID,
    data: ChallengeCreate,
    now: datetime | None = None,
) -> Challenge:
    """
    Validate, rate-limit and persist a new challenge with both share codes.

    end_date is derived as start_date + duration days. The creator's
    challenges_created counter is bumped in the same transaction.
    """
    now = now or utcnow()
    if data.start_date <= now:
        raise ValidationError("Start date must be in the future")
    if data.duration not in ALLOWED_DURATIONS:
        raise ValidationError("Invalid duration. Allowed values are 1, 3, or 7 days")
    text = {name: _checked_text(name, getattr(data, name)) for name in TEXT_LIMITS}

    if not await session.get(User, creator_id):
        raise NotFound("Creator not found")

    recent = await recent_challenge_count(session, creator_id, now)
    if recent >= settings.challenge_daily_limit:
        log.info("challenge_rate_limited", creator_id=str(creator_id), recent=recent)
        raise RateLimitExceeded(
            f"Rate limit exceeded: Maximum {settings.challenge_daily_limit} challenges per day"
        )

    end_date = data.start_date + timedelta(days=data.duration)

    # Codes are pre-checked; the unique indexes catch a concurrent claim of the same code.
    for _ in range(settings.code_max_attempts):
        ch = Challenge(
            creator_id=creator_id,
            title=text["title"],
            description=text["description"],
            theme=text["theme"],
            banner=data.banner,
            hashtags=list(data.hashtags),
            unique_code=await allocate_code(session, "public"),
            invite_code=await allocate_code(session, "private"),
            start_date=data.start_date,
            end_date=end_date,
            participants_count=0,
            winning_reward=text["winning_reward"],
            created_at=now,
            updated_at=now,
        )
        session.add(ch)
        try:
            await session.flush()
        except IntegrityError:
            await session.rollback()
            continue
        await _bump_challenges_created(session, creator_id, 1)
        await session.commit()
        await session.refresh(ch)
        log.info("challenge_created", challenge_id=str(ch.id), creator_id=str(creator_id), unique_code=ch.unique_code)
        return ch
    raise CodeGenerationExhausted("Failed to store challenge with unique codes")


async def get_challenge(session: AsyncSession, challenge_id: uuid.UUID) -> Challenge:
    ch = await session.get(Challenge, challenge_id)
    if not ch:
        raise NotFound("Challenge not found")
    return ch


async def _get_owned(session: AsyncSession, challenge_id: uuid.UUID, creator_id: uuid.UUID, action: str) -> Challenge:
    ch = await get_challenge(session, challenge_id)
    if ch.creator_id != creator_id:
        raise Forbidden(f"Forbidden: You can only {action} your own challenges")
    return ch


async def update_challenge(
    session: AsyncSession,
    challenge_id: uuid.UUID,
    creator_id: uuid.UUID,
    changes: ChallengeUpdate,
) -> Challenge:
    ch = await _get_owned(session, challenge_id, creator_id, "edit")
    fields = changes.model_dump(exclude_unset=True)

    # a field sent as blank or null is rejected, not skipped; nothing is applied until all pass
    text = {name: _checked_text(name, fields[name]) for name in TEXT_LIMITS if name in fields}
    start, end = ch.start_date, ch.end_date
    if fields.get("start_date") or fields.get("end_date"):
        start = fields.get("start_date") or start
        end = fields.get("end_date") or end
        if end <= start:
            raise ValidationError("End date must be after start date")

    for name, value in text.items():
        setattr(ch, name, value)
    if "banner" in fields:
        ch.banner = fields["banner"] or None
    if "hashtags" in fields:
        ch.hashtags = list(fields["hashtags"] or [])
    ch.start_date = start
    ch.end_date = end

    await session.commit()
    await session.refresh(ch)
    log.info("challenge_updated", challenge_id=str(ch.id), fields=sorted(fields))
    return ch


async def delete_challenge(session: AsyncSession, challenge_id: uuid.UUID, creator_id: uuid.UUID) -> None:
    """Delete a challenge. Score, invite and participation history is kept."""
    ch = await _get_owned(session, challenge_id, creator_id, "delete")
    await session.delete(ch)
    await _bump_challenges_created(session, creator_id, -1)
    await session.commit()
    log.info("challenge_deleted", challenge_id=str(challenge_id), creator_id=str(creator_id))


async def lookup_challenge(session: AsyncSession, code: str) -> tuple[Challenge, bool]:
    """Find a challenge by share or invite code. Returns (challenge, reached_via_invite_code)."""
    code = normalize_code(code)
    if not is_well_formed(code):
        raise ValidationError("Malformed challenge code")
    ch = await session.scalar(
        select(Challenge).where(or_(Challenge.unique_code == code, Challenge.invite_code == code))
    )
    if not ch:
        raise NotFound("Challenge not found")
    return ch, (ch.invite_code is not None and ch.invite_code == code)


async def get_by_invite_code(session: AsyncSession, invite_code: str) -> Challenge:
    code = normalize_code(invite_code)
    if not is_well_formed(code):
        raise ValidationError("Malformed invite code")
    ch = await session.scalar(select(Challenge).where(Challenge.invite_code == code))
    if not ch:
        raise NotFound("Challenge not found")
    return ch


async def list_challenges(
    session: AsyncSession,
    creator_id: uuid.UUID | None = None,
    limit: int | None = None,
) -> list[Challenge]:
    """Trending order: most distinct submitters first, then newest."""
    q = select(Challenge)
    if creator_id is not None:
        q = q.where(Challenge.creator_id == creator_id)
    q = q.order_by(Challenge.participants_count.desc(), Challenge.created_at.desc())
    q = q.limit(limit or settings.trending_limit)
    return list((await session.execute(q)).scalars().all())


async def list_active(session: AsyncSession, now: datetime | None = None) -> list[Challenge]:
    now = now or utcnow()
    q = (
        select(Challenge)
        .where(Challenge.start_date <= now, Challenge.end_date >= now)
        .order_by(Challenge.end_date.asc())
    )
    return list((await session.execute(q)).scalars().all())
