from __future__ import annotations
import uuid
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from glowboard.db import get_session
from glowboard.auth_deps import get_pipeline_caller
from glowboard.schemas.submission import ScoreSubmit, ScoreRecordPublic, ParticipationPublic
from glowboard.services import participation, submissions

# Called by the selfie/video scoring pipeline once an upload has been scored.
# Scores are never taken from end users.
router = APIRouter(prefix="/scores", tags=["scores"], dependencies=[Depends(get_pipeline_caller)])

@router.post("/{challenge_id}", response_model=ScoreRecordPublic, status_code=201)
async def submit_public_score(
    challenge_id: uuid.UUID,
    payload: ScoreSubmit,
    session: AsyncSession = Depends(get_session),
):
    rec, first = await submissions.submit_score(session, challenge_id, payload.user_id, payload.score)
    return ScoreRecordPublic(
        id=rec.id, challenge_id=rec.challenge_id, user_id=rec.user_id,
        score=rec.score, created_at=rec.created_at, first_submission=first,
    )

@router.post("/{challenge_id}/participation", response_model=ParticipationPublic)
async def record_participation_score(
    challenge_id: uuid.UUID,
    payload: ScoreSubmit,
    session: AsyncSession = Depends(get_session),
):
    p = await participation.record_score(session, challenge_id, payload.user_id, payload.score)
    return ParticipationPublic(
        challenge_id=p.challenge_id, user_id=p.user_id, status=p.status,
        score=p.score, completed_at=p.completed_at,
    )
