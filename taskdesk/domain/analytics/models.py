from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_DOWN, ROUND_HALF_UP, Decimal
from typing import Optional

from taskdesk.domain.users.models import User


def round_half_up(value: float, ndigits: int = 0) -> float:
    """
    round() as reports expect it: halves go up towards +inf, never to even.
    So 2.5 -> 3 and -12.5 -> -12.
    """
    quant = Decimal(1).scaleb(-ndigits)
    # towards +inf means away from zero above it and towards zero below it
    rounding = ROUND_HALF_UP if value >= 0 else ROUND_HALF_DOWN
    return float(Decimal(str(value)).quantize(quant, rounding=rounding))


def percent(part: int, whole: int, ndigits: int = 2) -> Optional[float]:
    if whole <= 0:
        return None
    return round_half_up(part / whole * 100, ndigits)


@dataclass(frozen=True)
class StatusSummary:
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    cancelled: int = 0
    overdue: int = 0
    assigned: int = 0

    @classmethod
    def from_counts(cls, counts: dict[str, int]) -> "StatusSummary":
        return cls(
            total=counts.get("total", 0),
            pending=counts.get("pending", 0),
            in_progress=counts.get("in_progress", 0),
            completed=counts.get("completed", 0),
            cancelled=counts.get("cancelled", 0),
            overdue=counts.get("overdue", 0),
            assigned=counts.get("assigned", 0),
        )

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "pending": self.pending,
            "inProgress": self.in_progress,
            "completed": self.completed,
            "cancelled": self.cancelled,
            "overdue": self.overdue,
            "assigned": self.assigned,
        }


@dataclass(frozen=True)
class DailyCount:
    day: date
    count: int

    def to_dict(self) -> dict:
        return {"date": self.day.isoformat(), "count": self.count}


@dataclass(frozen=True)
class UserActivity:
    user: User
    task_count: int
    completed_count: int
    completion_rate: float

    def to_dict(self) -> dict:
        return {
            "userId": self.user.id,
            "username": self.user.username,
            "email": self.user.email,
            "profileImage": self.user.profile_image,
            "taskCount": self.task_count,
            "completedCount": self.completed_count,
            "completionRate": self.completion_rate,
        }


@dataclass(frozen=True)
class WeeklyComparison:
    current_week: int
    previous_week: int
    growth: int

    def to_dict(self) -> dict:
        return {
            "currentWeek": self.current_week,
            "previousWeek": self.previous_week,
            "growth": self.growth,
        }


@dataclass(frozen=True)
class AssignmentStat:
    admin: User
    assigned_count: int
    completed_count: int
    completion_rate: float

    def to_dict(self) -> dict:
        return {
            "adminId": self.admin.id,
            "adminName": self.admin.username,
            "assignedCount": self.assigned_count,
            "completedAssignments": self.completed_count,
            "assignmentCompletionRate": self.completion_rate,
        }


@dataclass(frozen=True)
class UserReportRow:
    user: User
    total: int
    completed: int
    overdue: int
    assigned: int
    recent: int
    completion_rate: float

    def to_dict(self) -> dict:
        return {
            "userId": self.user.id,
            "username": self.user.username,
            "email": self.user.email,
            "isActive": self.user.is_active,
            "lastLogin": self.user.last_login_at.isoformat() if self.user.last_login_at else None,
            "createdAt": self.user.created_at.isoformat(),
            "totalTodos": self.total,
            "completedTodos": self.completed,
            "overdueTodos": self.overdue,
            "assignedTodos": self.assigned,
            "recentActivity": self.recent,
            "completionRate": self.completion_rate,
        }
