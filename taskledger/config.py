from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

TRUTHY = {"1", "true", "yes", "on"}


def _resolve_project_root() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[1]


PROJECT_ROOT = _resolve_project_root()


def load_env() -> None:
    env_name = os.getenv("APP_ENV", "development")
    candidates = [Path.cwd(), PROJECT_ROOT]
    for base in candidates:
        env_path = base / ".env"
        if env_path.exists():
            load_dotenv(env_path)
            break

    for base in candidates:
        env_specific = base / f".env.{env_name}"
        if env_specific.exists():
            load_dotenv(env_specific, override=True)
            break


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in TRUTHY


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str = "INFO"
    log_dir: str = "logs"
    archive_appends_log: bool = True
    review_notify_email: str | None = None
    live_refresh_seconds: int = 1
    bootstrap_admin_email: str | None = None
    bootstrap_admin_name: str = "Admin"


load_env()

DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set. Create a .env file with your connection string.")

SETTINGS = Settings(
    database_url=DATABASE_URL,
    log_level=os.getenv("LOG_LEVEL", "INFO"),
    log_dir=os.getenv("LOG_DIR", "logs"),
    archive_appends_log=_env_flag("ARCHIVE_APPENDS_LOG", True),
    review_notify_email=os.getenv("REVIEW_NOTIFY_EMAIL", "").strip() or None,
    live_refresh_seconds=max(int(os.getenv("LIVE_REFRESH_SECONDS", "1")), 1),
    bootstrap_admin_email=os.getenv("BOOTSTRAP_ADMIN_EMAIL", "").strip() or None,
    bootstrap_admin_name=os.getenv("BOOTSTRAP_ADMIN_NAME", "Admin").strip() or "Admin",
)
