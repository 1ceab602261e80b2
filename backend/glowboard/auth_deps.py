from __future__ import annotations
import hmac
import uuid
import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from glowboard.config import settings
from glowboard.db import get_session
from glowboard.security import decode_token
from glowboard.models.user import User

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)

async def _user_from_token(token: str, session: AsyncSession) -> User:
    try:
        data = decode_token(token)
        user_id = uuid.UUID(str(data.get("sub")))
    except (jwt.PyJWTError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token")
    if data.get("type") != "access":
        raise HTTPException(status_code=401, detail="Wrong token type")
    user = await session.get(User, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="User not found")
    return user

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    session: AsyncSession = Depends(get_session)
) -> User:
    return await _user_from_token(credentials.credentials, session)

async def get_optional_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(optional_security),
    session: AsyncSession = Depends(get_session)
) -> User | None:
    # Public reads: anonymous callers are fine, a bad token is still rejected
    if credentials is None:
        return None
    return await _user_from_token(credentials.credentials, session)

async def get_pipeline_caller(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> str:
    # Score intake is service-to-service; end-user JWTs never match
    expected = settings.scoring_service_token
    if not expected or not hmac.compare_digest(credentials.credentials.encode(), expected.encode()):
        raise HTTPException(status_code=403, detail="Scoring service credentials required")
    return "scoring-pipeline"
