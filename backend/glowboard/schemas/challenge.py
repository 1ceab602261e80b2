from __future__ import annotations
from pydantic import BaseModel, Field, StringConstraints, field_validator
from typing import Annotated, Literal, List
from uuid import UUID
from datetime import datetime, timezone

RuntimeState = Literal["upcoming", "active", "ended"]
LeaderboardMode = Literal["public", "private"]

# Lengths are checked after trimming
Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=100)]
Description = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=1000)]
Theme = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=64)]
Reward = Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=200)]


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return value
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_hashtags(tags: List[str] | None) -> List[str]:
    out: list[str] = []
    for tag in tags or []:
        t = tag.strip().lstrip("#").strip().lower()
        if t and t not in out:
            out.append(t)
    return out


class ChallengeCreate(BaseModel):
    title: Title
    description: Description
    theme: Theme
    banner: str | None = Field(default=None, max_length=512)
    hashtags: List[str] = Field(default_factory=list)
    start_date: datetime
    duration: int = Field(description="Challenge length in days: 1, 3 or 7")
    winning_reward: Reward

    @field_validator("banner")
    @classmethod
    def strip_banner(cls, v: str | None):
        v = (v or "").strip()
        return v or None

    @field_validator("hashtags")
    @classmethod
    def clean_hashtags(cls, v: List[str]):
        return normalize_hashtags(v)

    @field_validator("start_date")
    @classmethod
    def utc_start(cls, v: datetime):
        return _as_utc(v)


class ChallengeUpdate(BaseModel):
    title: Title | None = None
    description: Description | None = None
    theme: Theme | None = None
    banner: str | None = Field(default=None, max_length=512)
    hashtags: List[str] | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    winning_reward: Reward | None = None

    @field_validator("banner")
    @classmethod
    def strip_banner(cls, v: str | None):
        return v.strip() if v is not None else v

    @field_validator("hashtags")
    @classmethod
    def clean_hashtags(cls, v: List[str] | None):
        return normalize_hashtags(v) if v is not None else v

    @field_validator("start_date", "end_date")
    @classmethod
    def utc_dates(cls, v: datetime | None):
        return _as_utc(v)


class CreatorPublic(BaseModel):
    username: str
    profile_image: str | None = None


class ChallengePublic(BaseModel):
    id: UUID
    title: str
    description: str
    theme: str
    banner: str | None = None
    hashtags: List[str]
    unique_code: str
    invite_code: str | None = None  # only shown to the creator or to callers holding it
    start_date: datetime
    end_date: datetime
    participants_count: int
    creator_id: UUID
    creator: CreatorPublic | None = None
    winning_reward: str
    winner_id: UUID | None = None
    created_at: datetime
    updated_at: datetime
    runtime_state: RuntimeState
    share_url: str
    is_private: bool = False


class ChallengeSummary(BaseModel):
    id: UUID
    title: str
    unique_code: str


class PublicLeaderboardRow(BaseModel):
    rank: int
    user_id: UUID
    username: str
    profile_image: str | None = None
    total_score: float
    total_submissions: int
    highest_score: float
    average_score: float


class PrivateLeaderboardRow(BaseModel):
    rank: int
    user_id: UUID
    username: str
    profile_image: str | None = None
    score: float
    completed_at: datetime | None = None


class LeaderboardPublic(BaseModel):
    challenge: ChallengeSummary
    mode: LeaderboardMode
    leaderboard: List[PublicLeaderboardRow] | List[PrivateLeaderboardRow]


class InviteResponse(BaseModel):
    challenge_id: UUID
    user_id: UUID
    response: Literal["accepted", "declined"]
    message: str


class WinnerResolution(BaseModel):
    challenge_id: UUID
    outcome: Literal["not_found", "running", "already_declared", "no_entries", "declared"]
    winner_id: UUID | None = None
