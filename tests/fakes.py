# tests/fakes.py
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

from taskdesk.bootstrap import Container, build_container
from taskdesk.config import Settings
from taskdesk.constants import ROLE_USER
from taskdesk.domain.common.models import Principal
from taskdesk.domain.common.ports import Clock
from taskdesk.infra.security.bcrypt_hasher import BcryptHasher

# Tuesday noon UTC
NOW = datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock(Clock):
    """Deterministic clock; tests move it with advance() / set()."""

    def __init__(self, now: datetime = NOW) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now

    def advance(self, delta: timedelta) -> None:
        self._now = self._now + delta


def make_settings(tmp_path: Path, **overrides) -> Settings:
    values = dict(db_path=tmp_path / "taskdesk.db", timezone="UTC", login_max_attempts=3)
    values.update(overrides)
    return Settings(**values)


def make_container(settings: Settings, clock: Clock) -> Container:
    # minimum bcrypt cost keeps the suite fast
    container = build_container(settings, clock=clock, hasher=BcryptHasher(rounds=4))
    asyncio.run(container.init())
    return container


def add_user(container: Container, username: str, role: str = ROLE_USER) -> Principal:
    user = asyncio.run(
        container.identity.register(username, f"{username}@example.com", "secret123", role)
    )
    return user.to_principal()


def task_fields(**overrides) -> dict:
    fields = {"title": "Write report", "due_date": NOW + timedelta(days=2)}
    fields.update(overrides)
    return fields
