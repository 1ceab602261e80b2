from __future__ import annotations
import logging, sys
import structlog
import structlog.stdlib
from glowboard.config import settings

def _renderer(fmt: str):
    if fmt == "console":
        return structlog.dev.ConsoleRenderer(colors=False)
    return structlog.processors.JSONRenderer()

def configure_logging(level: str | None = None, fmt: str | None = None):
    """Route structlog and stdlib logging (uvicorn, sqlalchemy, rq) through one renderer."""
    lvl = logging.getLevelName((level or settings.log_level).upper())
    if not isinstance(lvl, int):
        lvl = logging.INFO
    renderer = _renderer(fmt or settings.log_format)
    shared = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
    ]
    structlog.configure(
        processors=[
            *shared,
            structlog.processors.EventRenamer("message"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(lvl),
        cache_logger_on_first_use=True,
    )
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=shared,
    ))
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(lvl)
    # SQL echo is noisy at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(max(lvl, logging.WARNING))
