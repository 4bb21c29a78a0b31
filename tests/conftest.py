# tests/conftest.py
from __future__ import annotations

from pathlib import Path

import pytest

from taskdesk.bootstrap import Container
from taskdesk.config import Settings
from taskdesk.constants import ROLE_ADMIN
from taskdesk.domain.common.models import Principal

from .fakes import FixedClock, add_user, make_container, make_settings


@pytest.fixture()
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture()
def container(settings: Settings, clock: FixedClock) -> Container:
    """Fully wired services over a fresh SQLite file per test."""
    return make_container(settings, clock)


@pytest.fixture()
def admin(container: Container) -> Principal:
    return add_user(container, "admin", ROLE_ADMIN)


@pytest.fixture()
def alice(container: Container) -> Principal:
    return add_user(container, "alice")


@pytest.fixture()
def bob(container: Container) -> Principal:
    return add_user(container, "bob")
