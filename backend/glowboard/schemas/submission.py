from __future__ import annotations
from pydantic import BaseModel, Field
from typing import Literal
from uuid import UUID
from datetime import datetime


class ScoreSubmit(BaseModel):
    # produced by the selfie/video scoring pipeline for the uploading user
    user_id: UUID
    score: float = Field(ge=0, le=100)


class ScoreRecordPublic(BaseModel):
    id: UUID
    challenge_id: UUID
    user_id: UUID
    score: float
    created_at: datetime
    first_submission: bool


class ParticipationPublic(BaseModel):
    challenge_id: UUID
    user_id: UUID
    status: Literal["accepted", "completed"]
    score: float
    completed_at: datetime | None = None
