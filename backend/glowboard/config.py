from __future__ import annotations
import os
from pydantic import BaseModel

class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "glowboard-api")
    app_display_name: str = os.getenv("APP_DISPLAY_NAME", "Glowboard")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_format: str = os.getenv("LOG_FORMAT", "json")  # json | console
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/glowboard_dev")
    redis_url: str = os.getenv("REDIS_URL", "redis://redis:6379/0")
    # Auth tokens
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    access_ttl_min: int = int(os.getenv("ACCESS_TTL_MIN", "15"))
    refresh_ttl_min: int = int(os.getenv("REFRESH_TTL_MIN", "10080"))  # 7d
    # Bearer credential of the selfie/video scoring pipeline; empty disables score intake
    scoring_service_token: str = os.getenv("SCORING_SERVICE_TOKEN", "")

    # Share links point at the web client
    frontend_url: str = os.getenv("FRONTEND_URL", "http://localhost:8080")

    # Challenge engine limits
    challenge_daily_limit: int = int(os.getenv("CHALLENGE_DAILY_LIMIT", "3"))  # per creator, rolling 24h
    challenge_max_participants: int = int(os.getenv("CHALLENGE_MAX_PARTICIPANTS", "10"))  # invite mode
    code_max_attempts: int = int(os.getenv("CODE_MAX_ATTEMPTS", "10"))
    leaderboard_limit: int = int(os.getenv("LEADERBOARD_LIMIT", "100"))
    trending_limit: int = int(os.getenv("TRENDING_LIMIT", "20"))

settings = Settings()
