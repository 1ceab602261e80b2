from __future__ import annotations
import uuid
from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from glowboard.config import settings
from glowboard.models.challenge import ChallengeInvite, ChallengeParticipation
from glowboard.models.submission import ScoreRecord
from glowboard.models.user import User
from glowboard.schemas.challenge import (
    ChallengeSummary, LeaderboardPublic, PublicLeaderboardRow, PrivateLeaderboardRow,
)
from glowboard.services.registry import lookup_challenge

# ---------- public mode: summed ScoreRecords ----------

async def public_leaderboard(
    session: AsyncSession, challenge_id: uuid.UUID, limit: int | None = None
) -> list[PublicLeaderboardRow]:
    total = func.sum(ScoreRecord.score)
    highest = func.max(ScoreRecord.score)
    q = (
        select(
            ScoreRecord.user_id, User.username, User.profile_image,
            total.label("total_score"),
            func.count(ScoreRecord.id).label("total_submissions"),
            highest.label("highest_score"),
        )
        .join(User, User.id == ScoreRecord.user_id)
        .where(ScoreRecord.challenge_id == challenge_id)
        .group_by(ScoreRecord.user_id, User.username, User.profile_image)
        .order_by(total.desc(), highest.desc(), User.username.asc())
        .limit(limit or settings.leaderboard_limit)
    )
    rows = (await session.execute(q)).all()
    return [
        PublicLeaderboardRow(
            rank=i,
            user_id=uid,
            username=uname,
            profile_image=img,
            total_score=float(tot or 0),
            total_submissions=int(n),
            highest_score=float(hi or 0),
            average_score=round(float(tot or 0) / int(n), 2) if n else 0.0,
        )
        for i, (uid, uname, img, tot, n, hi) in enumerate(rows, start=1)
    ]

# ---------- private mode: one score per participant ----------

async def private_leaderboard(session: AsyncSession, challenge_id: uuid.UUID) -> list[PrivateLeaderboardRow]:
    # Joining on the accepted invite row restricts to current participants; a declined
    # user's invite row says 'declined', so they drop out even if a record survived.
    q = (
        select(
            ChallengeParticipation.user_id, User.username, User.profile_image,
            ChallengeParticipation.score, ChallengeParticipation.completed_at,
        )
        .join(User, User.id == ChallengeParticipation.user_id)
        .join(
            ChallengeInvite,
            and_(
                ChallengeInvite.challenge_id == ChallengeParticipation.challenge_id,
                ChallengeInvite.user_id == ChallengeParticipation.user_id,
            ),
        )
        .where(
            ChallengeParticipation.challenge_id == challenge_id,
            ChallengeParticipation.status == "completed",
            ChallengeInvite.response == "accepted",
        )
        .order_by(ChallengeParticipation.score.desc(), ChallengeParticipation.completed_at.asc())
        .limit(settings.leaderboard_limit)
    )
    rows = (await session.execute(q)).all()
    return [
        PrivateLeaderboardRow(
            rank=i, user_id=uid, username=uname, profile_image=img,
            score=float(score), completed_at=completed_at,
        )
        for i, (uid, uname, img, score, completed_at) in enumerate(rows, start=1)
    ]


async def leaderboard_for_code(session: AsyncSession, code: str) -> LeaderboardPublic:
    """Rank a challenge's entrants; the kind of code used picks the algorithm."""
    ch, via_invite = await lookup_challenge(session, code)
    summary = ChallengeSummary(id=ch.id, title=ch.title, unique_code=ch.unique_code)
    if via_invite:
        return LeaderboardPublic(challenge=summary, mode="private", leaderboard=await private_leaderboard(session, ch.id))
    return LeaderboardPublic(challenge=summary, mode="public", leaderboard=await public_leaderboard(session, ch.id))
