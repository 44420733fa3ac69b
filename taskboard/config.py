from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field


DEFAULT_DATABASE_URL = "sqlite:///./taskboard.db"
DEV_SECRET = "taskboard-dev-secret"


def _split_origins(raw: str) -> list[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    jwt_secret: str = DEV_SECRET
    token_ttl_days: int = 30
    cors_origins: list[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls) -> Settings:
        return cls(
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            jwt_secret=os.getenv("JWT_SECRET", DEV_SECRET),
            token_ttl_days=int(os.getenv("TOKEN_TTL_DAYS", "30")),
            cors_origins=_split_origins(os.getenv("CORS_ORIGIN", "*")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
        )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
