from __future__ import annotations
import uuid
from datetime import datetime, timezone as dt_tz
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.ext.asyncio import AsyncSession
from redis import Redis
from redis.exceptions import RedisError
from rq import Queue
import structlog

from glowboard.config import settings
from glowboard.db import get_session
from glowboard.auth_deps import get_current_user, get_optional_user
from glowboard.models.challenge import Challenge
from glowboard.models.user import User
from glowboard.schemas.challenge import (
    ChallengeCreate, ChallengeUpdate, ChallengePublic, CreatorPublic,
    LeaderboardPublic, InviteResponse, WinnerResolution,
)
from glowboard.services import registry, participation, leaderboard, winners
from glowboard.services.refs import make_ref, ref_id, resolved_value
from glowboard.jobs.resolve_winners import resolve_winners

router = APIRouter(prefix="/challenges", tags=["challenges"])
log = structlog.get_logger()

# RQ queue (lazy single instance)
_redis = Redis.from_url(settings.redis_url)
q = Queue("default", connection=_redis)

def share_url(ch: Challenge) -> str:
    return f"{settings.frontend_url.rstrip('/')}/challenge/{ch.unique_code}"

async def hydrate_public(
    session: AsyncSession,
    ch: Challenge,
    viewer_id: uuid.UUID | None = None,
    via_invite: bool = False,
) -> ChallengePublic:
    now = datetime.now(dt_tz.utc)
    creator_ref = make_ref(ch.creator_id, await session.get(User, ch.creator_id))
    creator = resolved_value(creator_ref)
    show_invite = via_invite or (viewer_id is not None and viewer_id == ch.creator_id)
    return ChallengePublic(
        id=ch.id, title=ch.title, description=ch.description, theme=ch.theme,
        banner=ch.banner, hashtags=list(ch.hashtags or []),
        unique_code=ch.unique_code,
        invite_code=ch.invite_code if show_invite else None,
        start_date=ch.start_date, end_date=ch.end_date,
        participants_count=ch.participants_count,
        creator_id=ref_id(creator_ref),
        creator=CreatorPublic(username=creator.username, profile_image=creator.profile_image) if creator else None,
        winning_reward=ch.winning_reward, winner_id=ch.winner_id,
        created_at=ch.created_at, updated_at=ch.updated_at,
        runtime_state=registry.compute_runtime_state(ch, now),
        share_url=share_url(ch),
        is_private=via_invite,
    )

@router.post("", response_model=ChallengePublic, status_code=201)
async def create_challenge(
    payload: ChallengeCreate,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    user_id = user.id
    ch = await registry.create_challenge(session, user_id, payload)
    return await hydrate_public(session, ch, user_id)

@router.get("/trending", response_model=list[ChallengePublic])
async def list_trending(session: AsyncSession = Depends(get_session), user: User | None = Depends(get_optional_user)):
    rows = await registry.list_challenges(session)
    return [await hydrate_public(session, c, user.id if user else None) for c in rows]

@router.get("/mine", response_model=list[ChallengePublic])
async def list_mine(session: AsyncSession = Depends(get_session), user: User = Depends(get_current_user)):
    rows = await registry.list_challenges(session, creator_id=user.id)
    return [await hydrate_public(session, c, user.id) for c in rows]

@router.get("/active", response_model=list[ChallengePublic])
async def list_active(session: AsyncSession = Depends(get_session), user: User | None = Depends(get_optional_user)):
    rows = await registry.list_active(session)
    return [await hydrate_public(session, c, user.id if user else None) for c in rows]

@router.post("/resolve-winners", status_code=202)
async def enqueue_winner_sweep(user: User = Depends(get_current_user)):
    try:
        job = q.enqueue(resolve_winners, job_timeout=120)
    except RedisError as e:
        log.warning("winner_sweep_enqueue_failed", error=str(e))
        raise HTTPException(status_code=503, detail="Job queue unavailable")
    return {"job_id": job.id, "status": "queued"}

@router.put("/{challenge_id}", response_model=ChallengePublic)
async def update_challenge(
    challenge_id: uuid.UUID,
    payload: ChallengeUpdate,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    ch = await registry.update_challenge(session, challenge_id, user.id, payload)
    return await hydrate_public(session, ch, user.id)

@router.delete("/{challenge_id}", status_code=204)
async def delete_challenge(
    challenge_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    await registry.delete_challenge(session, challenge_id, user.id)
    return Response(status_code=204)

@router.post("/{challenge_id}/resolve-winner", response_model=WinnerResolution)
async def resolve_winner(
    challenge_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    result = await winners.resolve_winner(session, challenge_id)
    if result.outcome == "not_found":
        raise HTTPException(status_code=404, detail="Challenge not found")
    return result

@router.get("/{code}", response_model=ChallengePublic)
async def get_by_code(
    code: str,
    session: AsyncSession = Depends(get_session),
    user: User | None = Depends(get_optional_user),
):
    ch, via_invite = await registry.lookup_challenge(session, code)
    return await hydrate_public(session, ch, user.id if user else None, via_invite=via_invite)

@router.get("/{code}/leaderboard", response_model=LeaderboardPublic)
async def get_leaderboard(code: str, session: AsyncSession = Depends(get_session)):
    return await leaderboard.leaderboard_for_code(session, code)

@router.post("/{invite_code}/accept", response_model=InviteResponse)
async def accept_invite(
    invite_code: str,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    user_id = user.id
    ch = await participation.accept_invite(session, invite_code, user_id)
    return InviteResponse(challenge_id=ch.id, user_id=user_id, response="accepted", message="Challenge accepted successfully")

@router.post("/{invite_code}/decline", response_model=InviteResponse)
async def decline_invite(
    invite_code: str,
    session: AsyncSession = Depends(get_session),
    user: User = Depends(get_current_user),
):
    user_id = user.id
    ch = await participation.decline_invite(session, invite_code, user_id)
    return InviteResponse(challenge_id=ch.id, user_id=user_id, response="declined", message="Challenge declined")
