from __future__ import annotations
from pydantic import BaseModel, EmailStr, Field, field_validator
from uuid import UUID
from datetime import datetime

class RegisterRequest(BaseModel):
    email: EmailStr
    username: str = Field(min_length=3, max_length=32, pattern=r"^[A-Za-z0-9_]+$")
    password: str = Field(min_length=8, max_length=72)

    @field_validator("username")
    @classmethod
    def lower_username(cls, v: str):
        return v.lower()

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class UserPublic(BaseModel):
    id: UUID
    email: EmailStr
    username: str
    profile_image: str | None = None
    challenges_created: int
    challenge_wins: int
    created_at: datetime

class TokenPair(BaseModel):
    access: str
    refresh: str
