"""
Read-only rollups over tasks and users.

Every public method reads the clock once and threads that instant through
all of its clauses, so one report never mixes two notions of "now".
"""
from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta, tzinfo
from typing import Iterable, Optional

from taskdesk.constants import (
    ACTIVITY_WINDOW_DAYS,
    DIMENSIONS,
    RECENT_WINDOW_DAYS,
    TOP_USERS_LIMIT,
)
from taskdesk.domain.analytics.models import (
    AssignmentStat,
    DailyCount,
    StatusSummary,
    UserActivity,
    UserReportRow,
    WeeklyComparison,
    percent,
    round_half_up,
)
from taskdesk.domain.analytics.ports import TaskStatsRepository
from taskdesk.domain.common.errors import Forbidden, InvalidParameter
from taskdesk.domain.common.models import Principal
from taskdesk.domain.common.ports import Clock
from taskdesk.domain.common.time import from_iso, local_date, to_iso
from taskdesk.domain.tasks.models import TaskCriteria
from taskdesk.domain.tasks.query import resolve_owner_scope
from taskdesk.domain.users.models import UserCriteria
from taskdesk.domain.users.ports import UserRepository
from taskdesk.domain.users.service import require_admin

logger = logging.getLogger(__name__)


class AnalyticsService:
    def __init__(
        self,
        stats: TaskStatsRepository,
        users: UserRepository,
        clock: Clock,
        tz: tzinfo,
    ) -> None:
        self._stats = stats
        self._users = users
        self._clock = clock
        self._tz = tz

    @staticmethod
    def _scope(principal: Principal, user_id: Optional[str]) -> TaskCriteria:
        if not principal.is_active:
            raise Forbidden("Account is deactivated.")
        return TaskCriteria(owner_id=resolve_owner_scope(principal, user_id))

    # ---- scoped (any principal; non-admins see only their own tasks) ----

    async def summary(self, principal: Principal, user_id: Optional[str] = None) -> StatusSummary:
        return await self._summary(self._scope(principal, user_id), self._clock.now())

    async def _summary(self, scope: TaskCriteria, now: datetime) -> StatusSummary:
        counts = await self._stats.status_counts(scope, to_iso(now))
        return StatusSummary.from_counts(counts)

    async def distribution(
        self, principal: Principal, dimension: str, user_id: Optional[str] = None
    ) -> list[tuple[str, int]]:
        rows = await self.breakdown(principal, dimension, user_id)
        return [(r["value"], r["count"]) for r in rows]

    async def breakdown(
        self, principal: Principal, dimension: str, user_id: Optional[str] = None
    ) -> list[dict]:
        """Like distribution, plus how many of each group are completed."""
        if dimension not in DIMENSIONS:
            raise InvalidParameter(f"Unknown dimension {dimension!r}; expected one of: {', '.join(DIMENSIONS)}")
        rows = await self._stats.group_counts(self._scope(principal, user_id), dimension)
        return [dict(r) for r in rows]

    async def daily_activity(
        self,
        principal: Principal,
        window_days: int = ACTIVITY_WINDOW_DAYS,
        user_id: Optional[str] = None,
    ) -> list[DailyCount]:
        return await self._daily_activity(self._scope(principal, user_id), window_days, self._clock.now())

    async def _daily_activity(self, scope: TaskCriteria, window_days: int, now: datetime) -> list[DailyCount]:
        """
        Tasks created per calendar day (reporting timezone) over the trailing
        window_days including today. Days without tasks are reported as 0.
        """
        if not isinstance(window_days, int) or window_days < 1:
            raise InvalidParameter("window_days must be a positive integer")
        today = local_date(now, self._tz)
        first_day = today - timedelta(days=window_days - 1)
        window_start = datetime.combine(first_day, datetime.min.time(), tzinfo=self._tz)
        window_end = datetime.combine(today + timedelta(days=1), datetime.min.time(), tzinfo=self._tz)

        criteria = TaskCriteria(
            owner_id=scope.owner_id, created_from=window_start, created_before=window_end
        )
        values = await self._stats.created_at_values(criteria)
        per_day = Counter(local_date(from_iso(v), self._tz) for v in values)
        return [
            DailyCount(day=first_day + timedelta(days=i), count=per_day.get(first_day + timedelta(days=i), 0))
            for i in range(window_days)
        ]

    # ---- admin only ----

    async def user_stats(self, principal: Principal, user_id: Optional[str] = None) -> StatusSummary:
        return await self.summary(principal, user_id)

    async def stats_for_users(self, admin: Principal, user_ids: Iterable[str]) -> dict[str, StatusSummary]:
        require_admin(admin)
        user_ids = list(user_ids)
        counts = await self._stats.status_counts_by_owner(user_ids, to_iso(self._clock.now()))
        return {uid: StatusSummary.from_counts(counts.get(uid, {})) for uid in user_ids}

    async def top_active_users(self, admin: Principal, limit: int = TOP_USERS_LIMIT) -> list[UserActivity]:
        require_admin(admin)
        return await self._top_active_users(limit, self._clock.now())

    async def _top_active_users(self, limit: int, now: datetime) -> list[UserActivity]:
        if not isinstance(limit, int) or limit < 1:
            raise InvalidParameter("limit must be a positive integer")
        rows = await self._stats.owner_totals(TaskCriteria(), to_iso(now))
        users = await self._users.get_many(r["user_id"] for r in rows)
        out: list[UserActivity] = []
        for r in rows:
            if len(out) >= limit:
                break
            user = users.get(r["user_id"])
            # owners with no tasks never appear in rows, so no zero division
            if user is None or not user.is_active or r["total"] == 0:
                continue
            out.append(UserActivity(
                user=user,
                task_count=r["total"],
                completed_count=r["completed"],
                completion_rate=percent(r["completed"], r["total"]),
            ))
        return out

    async def weekly_comparison(self, admin: Principal) -> WeeklyComparison:
        require_admin(admin)
        return await self._weekly_comparison(self._clock.now())

    async def _weekly_comparison(self, now: datetime) -> WeeklyComparison:
        week_ago = now - timedelta(days=7)
        two_weeks_ago = now - timedelta(days=14)
        current = await self._stats.count(TaskCriteria(created_from=week_ago, created_before=now))
        previous = await self._stats.count(TaskCriteria(created_from=two_weeks_ago, created_before=week_ago))
        if previous > 0:
            growth = int(round_half_up((current - previous) / previous * 100))
        else:
            growth = 100 if current > 0 else 0
        return WeeklyComparison(current_week=current, previous_week=previous, growth=growth)

    async def assignment_stats(self, admin: Principal) -> list[AssignmentStat]:
        require_admin(admin)
        return await self._assignment_stats()

    async def _assignment_stats(self) -> list[AssignmentStat]:
        rows = await self._stats.assigner_totals()
        admins = await self._users.get_many(r["assigned_by"] for r in rows)
        out = []
        for r in rows:
            assigner = admins.get(r["assigned_by"])
            if assigner is None:
                continue
            out.append(AssignmentStat(
                admin=assigner,
                assigned_count=r["total"],
                completed_count=r["completed"],
                completion_rate=percent(r["completed"], r["total"]),
            ))
        return out

    async def user_activity_report(self, admin: Principal) -> list[UserReportRow]:
        require_admin(admin)
        return await self._user_activity_report(self._clock.now())

    async def _user_activity_report(self, now: datetime) -> list[UserReportRow]:
        total_users = await self._users.count(UserCriteria())
        users = await self._users.find(UserCriteria(), offset=0, limit=max(total_users, 1))
        rows = await self._stats.owner_totals(
            TaskCriteria(), to_iso(now), recent_from_iso=to_iso(now - timedelta(days=RECENT_WINDOW_DAYS))
        )
        by_owner = {r["user_id"]: r for r in rows}
        report = []
        for user in users:
            r = by_owner.get(user.id, {})
            total = r.get("total", 0)
            completed = r.get("completed", 0)
            report.append(UserReportRow(
                user=user,
                total=total,
                completed=completed,
                overdue=r.get("overdue", 0),
                assigned=r.get("assigned", 0),
                recent=r.get("recent", 0),
                # every user is listed here, so an empty account reads as 0%
                completion_rate=percent(completed, total) or 0.0,
            ))
        report.sort(key=lambda row: row.total, reverse=True)
        return report

    async def dashboard(self, admin: Principal) -> dict:
        """Admin overview; all figures share one point in time."""
        require_admin(admin)
        now = self._clock.now()
        week_ago = now - timedelta(days=RECENT_WINDOW_DAYS)
        everything = TaskCriteria()

        summary = await self._summary(everything, now)
        active_users = await self._users.count(UserCriteria(is_active=True))
        recent_users = await self._users.count(UserCriteria(created_from=week_ago))
        recent_tasks = await self._stats.count(TaskCriteria(created_from=week_ago, created_before=now))

        recent_owners = await self._stats.owner_totals(TaskCriteria(created_from=week_ago, created_before=now), to_iso(now))
        avg_tasks = (
            round_half_up(sum(r["total"] for r in recent_owners) / len(recent_owners), 2)
            if recent_owners else 0
        )
        weekly = await self._weekly_comparison(now)

        logger.debug("Dashboard computed at %s", to_iso(now))
        return {
            "generatedAt": to_iso(now),
            "summary": {
                "totalUsers": active_users,
                "totalTodos": summary.total,
                "completedTodos": summary.completed,
                "overdueTodos": summary.overdue,
                "recentUsers": recent_users,
                "recentTodos": recent_tasks,
                "completionRate": int(percent(summary.completed, summary.total, 0) or 0),
                "avgTasksPerUser": avg_tasks,
            },
            "charts": {
                "statusStats": await self._stats.group_counts(everything, "status"),
                "categoryStats": await self._stats.group_counts(everything, "category"),
                "priorityStats": await self._stats.group_counts(everything, "priority"),
                "dailyActivity": [d.to_dict() for d in await self._daily_activity(everything, ACTIVITY_WINDOW_DAYS, now)],
                "activeUsers": [u.to_dict() for u in await self._top_active_users(TOP_USERS_LIMIT, now)],
                "assignmentStats": [a.to_dict() for a in await self._assignment_stats()],
            },
            "trends": {
                "weeklyComparison": weekly.to_dict(),
                "growthRate": weekly.growth,
            },
        }
