"""
Application settings, read from environment variables with dev defaults.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _project_root() -> Path:
    return Path(__file__).resolve().parent.parent


def _split_csv(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


@dataclass
class Settings:
    db_path: Path = field(default_factory=lambda: _project_root() / "data" / "bolao.db")
    jwt_secret_key: str = "bolao-dev-secret-change-in-production"
    token_expire_minutes: int = 60 * 24 * 7
    admin_usernames: list[str] = field(default_factory=list)
    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:5173", "http://127.0.0.1:5173"]
    )
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        db_path = os.getenv("BOLAO_DB_PATH")
        cors = os.getenv("BOLAO_CORS_ORIGINS")
        return cls(
            db_path=Path(db_path) if db_path else defaults.db_path,
            jwt_secret_key=os.getenv("JWT_SECRET_KEY", defaults.jwt_secret_key),
            token_expire_minutes=int(os.getenv("BOLAO_TOKEN_EXPIRE_MINUTES", defaults.token_expire_minutes)),
            admin_usernames=_split_csv(os.getenv("BOLAO_ADMIN_USERNAMES", "")),
            cors_origins=_split_csv(cors) if cors else defaults.cors_origins,
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


def setup_logging(settings: Settings) -> None:
    """Configure root logging and align uvicorn's loggers with it."""
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).setLevel(level)
