"""
Field validation and derived-field rules for tasks.

Validation collects every violation before failing so the caller gets the
whole picture in one InvalidField.
"""
from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Optional

from taskdesk.constants import (
    DESCRIPTION_MAX_LENGTH,
    TASK_CATEGORIES,
    TASK_PRIORITIES,
    TASK_STATUS_COMPLETED,
    TASK_STATUSES,
    TITLE_MAX_LENGTH,
)
from taskdesk.domain.common.errors import FieldError, InvalidField

WRITABLE_FIELDS = ("title", "description", "due_date", "category", "priority", "status", "user_id")
# set by the store or the assignment workflow, never by callers
DERIVED_FIELDS = ("completed_at", "assigned_by", "id", "created_at", "updated_at")
REQUIRED_ON_CREATE = ("title", "due_date", "user_id")


def parse_datetime(value: Any) -> Optional[datetime]:
    """Aware datetime from a datetime or ISO 8601 string; None if unusable."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str) and value.strip():
        try:
            dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        return None
    return dt


def _supplied(fields: Mapping[str, Any], name: str, partial: bool) -> bool:
    # on create, a missing or None required field is reported as required instead
    if name not in fields:
        return False
    return partial or fields[name] is not None


def clean_task_fields(fields: Mapping[str, Any], *, partial: bool) -> dict[str, Any]:
    """
    Validate and normalise task fields.

    With partial=False (create) required fields must be present; with
    partial=True (update) only the supplied fields are checked.
    Raises InvalidField listing every problem found.
    """
    errors: list[FieldError] = []
    cleaned: dict[str, Any] = {}

    for name in fields:
        if name in DERIVED_FIELDS:
            errors.append(FieldError(name, "is read-only"))
        elif name not in WRITABLE_FIELDS:
            errors.append(FieldError(name, "is not a task field"))

    if not partial:
        for name in REQUIRED_ON_CREATE:
            if fields.get(name) is None:
                errors.append(FieldError(name, "is required"))

    if _supplied(fields, "title", partial):
        title = fields["title"]
        if not isinstance(title, str) or not title.strip():
            errors.append(FieldError("title", "cannot be empty"))
        elif len(title.strip()) > TITLE_MAX_LENGTH:
            errors.append(FieldError("title", f"cannot exceed {TITLE_MAX_LENGTH} characters"))
        else:
            cleaned["title"] = title.strip()

    if "description" in fields:
        desc = fields["description"]
        if desc is None:
            cleaned["description"] = None
        elif not isinstance(desc, str):
            errors.append(FieldError("description", "must be text"))
        elif len(desc.strip()) > DESCRIPTION_MAX_LENGTH:
            errors.append(FieldError("description", f"cannot exceed {DESCRIPTION_MAX_LENGTH} characters"))
        else:
            cleaned["description"] = desc.strip() or None

    if _supplied(fields, "due_date", partial):
        due = parse_datetime(fields["due_date"])
        if due is None:
            errors.append(FieldError("due_date", "must be a timezone-aware ISO 8601 datetime"))
        else:
            cleaned["due_date"] = due

    for name, allowed in (
        ("category", TASK_CATEGORIES),
        ("priority", TASK_PRIORITIES),
        ("status", TASK_STATUSES),
    ):
        if not _supplied(fields, name, partial):
            continue
        value = fields[name]
        if value not in allowed:
            errors.append(FieldError(name, f"must be one of: {', '.join(allowed)}"))
        else:
            cleaned[name] = value

    if _supplied(fields, "user_id", partial):
        owner = fields["user_id"]
        if not isinstance(owner, str) or not owner.strip():
            errors.append(FieldError("user_id", "must be a user id"))
        else:
            cleaned["user_id"] = owner.strip()

    if errors:
        raise InvalidField(errors)
    return cleaned


def completion_timestamp(
    previous_status: Optional[str],
    previous_completed_at: Optional[datetime],
    new_status: str,
    now: datetime,
) -> Optional[datetime]:
    """
    completed_at is set iff status is completed.
    Entering completed stamps now; staying completed keeps the first stamp.
    """
    if new_status != TASK_STATUS_COMPLETED:
        return None
    if previous_status == TASK_STATUS_COMPLETED and previous_completed_at is not None:
        return previous_completed_at
    return now
