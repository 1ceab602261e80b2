from __future__ import annotations
import asyncio
import structlog
from glowboard.db import SessionLocal
from glowboard.services.winners import resolve_due_winners

log = structlog.get_logger()

async def _run() -> int:
    async with SessionLocal() as session:
        results = await resolve_due_winners(session)
    return sum(1 for r in results if r.outcome == "declared")

def resolve_winners():
    # RQ entry point (sync); run the async sweep
    declared = asyncio.run(_run())
    log.info("resolve_winners_job_done", declared=declared)
    return declared
