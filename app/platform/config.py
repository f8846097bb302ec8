from pathlib import Path
from typing import List, Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── App ─────────────────────────────────────
    APP_NAME: str = "SmartWhales API"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    DEBUG: bool = False

    # ── Database ────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./smartwhales.db"
    DB_ECHO: bool = False

    # ── CORS ────────────────────────────────────
    CORS_ORIGINS: List[str] = [
        "https://smartwhalesai-fe.vercel.app",
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # ── Rate limiting ───────────────────────────
    RATE_LIMIT_MAX_REQUESTS: int = 100
    RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60
    RATE_LIMIT_PATH_PREFIX: str = "/api/"
    WHITELIST_IPS: List[str] = []
    FORCE_IN_MEMORY_RATE_LIMITER: bool = True
    REDIS_URL: str = "redis://localhost:6379/0"

    # ── Wallet auth ─────────────────────────────
    AUTH_APP_NAME: str = "SmartWhales.ai"
    AUTH_MESSAGE_MAX_AGE_SECONDS: int = 600  # 0 disables the freshness check
    AUTH_REQUIRE_CHALLENGE: bool = False
    AUTH_CHALLENGE_TTL_SECONDS: int = 300

    class Config:
        env_file = str(Path(__file__).parent.parent.parent / ".env")
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


settings = Settings()
