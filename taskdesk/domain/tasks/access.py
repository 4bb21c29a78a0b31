from __future__ import annotations

from enum import Enum
import logging

from taskdesk.domain.common.errors import Forbidden
from taskdesk.domain.common.models import Principal

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"


def can_access(principal: Principal, owner_id: str, operation: Operation) -> bool:
    """
    Decide whether principal may perform operation on a task owned by owner_id.

    Admins may do anything to any task. Everyone else is limited to tasks
    they own, including the owner they name when creating. Deactivated
    principals are denied outright.
    """
    if not principal.is_active:
        return False
    if principal.is_admin:
        return True
    return owner_id == principal.id


def ensure_access(principal: Principal, owner_id: str, operation: Operation) -> None:
    if can_access(principal, owner_id, operation):
        return
    if not principal.is_active:
        logger.warning("Denied %s for deactivated principal=%s", operation.value, principal.id)
        raise Forbidden("Account is deactivated.")
    logger.warning(
        "Denied %s on task of user=%s for principal=%s role=%s",
        operation.value, owner_id, principal.id, principal.role,
    )
    if operation is Operation.CREATE:
        raise Forbidden("Only admins can create tasks for other users.")
    raise Forbidden("Access denied.")
