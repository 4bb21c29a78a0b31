from dataclasses import dataclass
import os
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from taskdesk.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

load_dotenv()


@dataclass(frozen=True)
class Settings:
    db_path: Path
    timezone: str = "UTC"
    default_page_size: int = DEFAULT_PAGE_SIZE
    max_page_size: int = MAX_PAGE_SIZE
    log_level: str = "INFO"
    login_max_attempts: int = 5
    login_window_minutes: int = 15
    admin_username: Optional[str] = None
    admin_email: Optional[str] = None
    admin_password: Optional[str] = None


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, str(default)).strip()
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {value}")
    return value


def load_settings() -> Settings:
    db_raw = os.getenv("DB_PATH", "data/taskdesk.db").strip()
    tz = os.getenv("TZ", "UTC").strip() or "UTC"
    try:
        ZoneInfo(tz)
    except (ZoneInfoNotFoundError, ValueError):
        raise RuntimeError(f"TZ is not a known timezone: {tz!r}") from None

    default_page_size = _int_env("DEFAULT_PAGE_SIZE", DEFAULT_PAGE_SIZE)
    max_page_size = _int_env("MAX_PAGE_SIZE", MAX_PAGE_SIZE)
    if default_page_size > max_page_size:
        raise RuntimeError("DEFAULT_PAGE_SIZE cannot exceed MAX_PAGE_SIZE")

    # optional: seeded once if no admin exists yet
    admin_username = os.getenv("ADMIN_USERNAME", "").strip() or None
    admin_email = os.getenv("ADMIN_EMAIL", "").strip() or None
    admin_password = os.getenv("ADMIN_PASSWORD", "") or None

    return Settings(
        db_path=Path(db_raw),
        timezone=tz,
        default_page_size=default_page_size,
        max_page_size=max_page_size,
        log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        login_max_attempts=_int_env("LOGIN_MAX_ATTEMPTS", 5),
        login_window_minutes=_int_env("LOGIN_WINDOW_MINUTES", 15),
        admin_username=admin_username,
        admin_email=admin_email,
        admin_password=admin_password,
    )
