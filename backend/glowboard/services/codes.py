from __future__ import annotations
import re
import secrets, string
from typing import Literal
from sqlalchemy import select, or_, exists
from sqlalchemy.ext.asyncio import AsyncSession
from glowboard.config import settings
from glowboard.errors import CodeGenerationExhausted
from glowboard.models.challenge import Challenge

ALPHABET = string.ascii_uppercase + string.digits

CodeKind = Literal["public", "private"]
CODE_LENGTHS: dict[str, int] = {"public": 8, "private": 10}
CODE_PATTERN = re.compile(r"^(?:[A-Z0-9]{8}|[A-Z0-9]{10})$")
# Single-segment paths under /challenges that would shadow a code lookup
RESERVED_CODES = frozenset({"TRENDING"})

def generate_code(length: int = 8) -> str:
    return "".join(secrets.choice(ALPHABET) for _ in range(length))

def normalize_code(code: str) -> str:
    return (code or "").strip().upper()

def is_well_formed(code: str) -> bool:
    return bool(CODE_PATTERN.match(code))

async def code_in_use(session: AsyncSession, code: str) -> bool:
    # public and private codes share one namespace
    return bool(await session.scalar(
        select(exists().where(or_(Challenge.unique_code == code, Challenge.invite_code == code)))
    ))

async def allocate_code(session: AsyncSession, kind: CodeKind, attempts: int | None = None) -> str:
    """
    Draw a code of the given kind that no challenge uses yet, in either code column.
    Raises CodeGenerationExhausted after `attempts` collisions instead of looping on.
    """
    length = CODE_LENGTHS[kind]
    budget = attempts or settings.code_max_attempts
    for _ in range(budget):
        code = generate_code(length)
        if code in RESERVED_CODES:
            continue
        if not await code_in_use(session, code):
            return code
    raise CodeGenerationExhausted(f"Failed to generate a unique {kind} code after {budget} attempts")
