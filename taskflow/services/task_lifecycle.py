"""
Task status lifecycle.

Statuses move freely between pending, in-progress and completed; who may move
them is decided by the authorization engine (completed tasks are locked to
their creator). This module only owns the side effects of a transition and
keeps ``completed_at`` set exactly when the task is completed.
"""

from datetime import datetime
from typing import Optional

from taskflow.core.clock import utcnow
from taskflow.core.exceptions import InvalidArgument
from taskflow.models.task import Task, TaskStatus

VALID_STATUSES = tuple(s.value for s in TaskStatus)


def parse_status(value) -> TaskStatus:
    try:
        return TaskStatus(value)
    except ValueError:
        raise InvalidArgument(
            f"Invalid status. Expected one of: {', '.join(VALID_STATUSES)}",
            code="invalid_status"
        ) from None


def apply_status(task: Task, new_status, now: Optional[datetime] = None) -> bool:
    """
    Move ``task`` to ``new_status``; return False for a no-op transition.

    Entering completed stamps ``completed_at``; leaving it clears the stamp.
    """
    new_status = parse_status(new_status)
    old_status = TaskStatus(task.status)
    if new_status == old_status:
        return False

    task.status = new_status
    if new_status == TaskStatus.COMPLETED:
        task.completed_at = now or utcnow()
    elif old_status == TaskStatus.COMPLETED:
        task.completed_at = None
    return True
