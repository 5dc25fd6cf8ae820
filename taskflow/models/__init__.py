from taskflow.models.user import User, UserRole
from taskflow.models.token import RefreshToken
from taskflow.models.project import Project, ProjectMember
from taskflow.models.task import (
    Task,
    TaskAssignment,
    TaskStatus,
    TaskPriority,
    OPEN_STATUSES,
    MAX_ASSIGNEES
)
from taskflow.models.comment import Comment, MAX_COMMENT_LENGTH
from taskflow.models.notification import Notification, NotificationType
from taskflow.models.event import Event

__all__ = [
    "User",
    "UserRole",
    "RefreshToken",
    "Project",
    "ProjectMember",
    "Task",
    "TaskAssignment",
    "TaskStatus",
    "TaskPriority",
    "OPEN_STATUSES",
    "MAX_ASSIGNEES",
    "Comment",
    "MAX_COMMENT_LENGTH",
    "Notification",
    "NotificationType",
    "Event"
]
