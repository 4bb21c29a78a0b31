"""Wire settings, storage adapters and services together."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from taskdesk.config import Settings
from taskdesk.domain.analytics.service import AnalyticsService
from taskdesk.domain.common.ports import Clock, IdGenerator
from taskdesk.domain.common.time import to_iso
from taskdesk.domain.tasks.service import TaskService
from taskdesk.domain.tasks.store import TaskStore
from taskdesk.domain.users.ports import PasswordHasher
from taskdesk.domain.users.service import IdentityService
from taskdesk.infra.clock.system_clock import SystemClock
from taskdesk.infra.db.connection import Database
from taskdesk.infra.db.repo.login_attempts_sqlite import LoginAttemptsSqliteRepo
from taskdesk.infra.db.repo.stats_sqlite import StatsSqliteRepo
from taskdesk.infra.db.repo.tasks_sqlite import TaskSqliteRepo
from taskdesk.infra.db.repo.users_sqlite import UserSqliteRepo
from taskdesk.infra.db.schema_version import apply_migrations
from taskdesk.infra.ids.uuid_gen import UuidGenerator
from taskdesk.infra.security.bcrypt_hasher import BcryptHasher

logger = logging.getLogger(__name__)


@dataclass
class Container:
    settings: Settings
    db: Database
    clock: Clock
    identity: IdentityService
    tasks: TaskService
    analytics: AnalyticsService

    async def init(self) -> None:
        """Apply migrations and seed the configured admin if none is active."""
        await apply_migrations(self.db, to_iso(self.clock.now()))
        s = self.settings
        if s.admin_username and s.admin_email and s.admin_password:
            await self.identity.ensure_admin(s.admin_username, s.admin_email, s.admin_password)


def build_container(
    settings: Settings,
    clock: Optional[Clock] = None,
    ids: Optional[IdGenerator] = None,
    hasher: Optional[PasswordHasher] = None,
) -> Container:
    db = Database(str(settings.db_path))
    clock = clock or SystemClock(settings.timezone)
    ids = ids or UuidGenerator()
    hasher = hasher or BcryptHasher()
    tz = SystemClock(settings.timezone).tz

    users_repo = UserSqliteRepo(db)
    tasks_repo = TaskSqliteRepo(db)

    identity = IdentityService(
        users=users_repo,
        hasher=hasher,
        attempts=LoginAttemptsSqliteRepo(db),
        clock=clock,
        ids=ids,
        login_max_attempts=settings.login_max_attempts,
        login_window=timedelta(minutes=settings.login_window_minutes),
    )
    tasks = TaskService(
        store=TaskStore(tasks_repo, clock, ids),
        tasks=tasks_repo,
        users=users_repo,
        clock=clock,
        tz=tz,
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )
    analytics = AnalyticsService(stats=StatsSqliteRepo(db), users=users_repo, clock=clock, tz=tz)

    logger.debug("Container built db=%s tz=%s", settings.db_path, settings.timezone)
    return Container(
        settings=settings,
        db=db,
        clock=clock,
        identity=identity,
        tasks=tasks,
        analytics=analytics,
    )
