"""
Constants for task fields, roles and query parameters.
"""
from __future__ import annotations

# Task status
TASK_STATUS_PENDING = "pending"
TASK_STATUS_IN_PROGRESS = "in-progress"
TASK_STATUS_COMPLETED = "completed"
TASK_STATUS_CANCELLED = "cancelled"

TASK_STATUSES = (
    TASK_STATUS_PENDING,
    TASK_STATUS_IN_PROGRESS,
    TASK_STATUS_COMPLETED,
    TASK_STATUS_CANCELLED,
)
# Statuses for which a task can never be overdue
CLOSED_STATUSES = (TASK_STATUS_COMPLETED, TASK_STATUS_CANCELLED)

# Task categories
TASK_CATEGORIES = ("Work", "Personal", "Health", "Education", "Shopping", "Other")
DEFAULT_CATEGORY = "Personal"

# Task priority, lowest first (index is the sort rank)
TASK_PRIORITIES = ("Low", "Medium", "High", "Critical")
DEFAULT_PRIORITY = "Medium"

# Roles
ROLE_USER = "user"
ROLE_ADMIN = "admin"
ROLES = (ROLE_USER, ROLE_ADMIN)

# Field limits
TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
PASSWORD_MIN_LENGTH = 6
# bcrypt only looks at the first 72 bytes
PASSWORD_MAX_BYTES = 72

# List group shortcuts
GROUP_TODAY = "today"
GROUP_OVERDUE = "overdue"
GROUP_COMPLETED = "completed"
GROUP_ALL = "all"
TASK_GROUPS = (GROUP_TODAY, GROUP_OVERDUE, GROUP_COMPLETED, GROUP_ALL)

# Sorting (public name -> column)
SORT_FIELDS = {
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "dueDate": "due_date",
    "completedAt": "completed_at",
    "title": "title",
    "priority": "priority",
    "status": "status",
    "category": "category",
}
DEFAULT_SORT_FIELD = "createdAt"
SORT_ASC = "asc"
SORT_DESC = "desc"
DEFAULT_SORT_ORDER = SORT_DESC

# Pagination
DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Reporting windows (days)
ACTIVITY_WINDOW_DAYS = 30
RECENT_WINDOW_DAYS = 7
TOP_USERS_LIMIT = 10

# Distribution dimensions
DIMENSIONS = ("status", "category", "priority")
