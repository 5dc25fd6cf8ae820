"""
Role-based access control for taskflow.

All authorization decisions go through this module. Decisions depend only on
the acting user's id and role, ownership and assignment facts, and the stored
task status, so the same inputs always yield the same ``Decision``.

Roles are totally ordered:

- worker     - works on tasks assigned to them
- manager    - creates projects and manages the ones they own
- supervisor - sees and edits everything except project deletion
- admin      - full access, user administration
"""

import enum
from dataclasses import dataclass
from typing import Iterable, Optional

from taskflow.core.exceptions import Forbidden
from taskflow.models.task import TaskStatus
from taskflow.models.user import UserRole


ROLE_RANK = {
    UserRole.WORKER: 0,
    UserRole.MANAGER: 1,
    UserRole.SUPERVISOR: 2,
    UserRole.ADMIN: 3,
}

# Stable reason codes -> messages
REASONS = {
    "insufficient_role": "Your role does not allow this action",
    "resource_access_denied": "You do not have access to this resource",
    "project_access_denied": "Access denied to this project",
    "project_update_forbidden": "Only the project owner or admin/supervisor can update this project",
    "project_members_forbidden": "Only the project owner or admin/supervisor can manage members",
    "project_delete_forbidden": "Only the project owner or admin can delete this project",
    "task_view_forbidden": "You do not have access to this task",
    "task_create_forbidden": "You cannot create tasks in this project",
    "task_update_forbidden": "You do not have permission to update this task",
    "assignee_status_only": "Assignees may only change the task status",
    "task_completed_locked": "Only the task creator can modify a completed task",
    "task_delete_forbidden": "Only the task creator, project owner or admin can delete this task",
    "comment_edit_forbidden": "You can only edit your own comments",
    "comment_delete_forbidden": "You can only delete your own comments or comments on tasks you created",
    "admin_required": "Only admins can manage users",
    "cannot_delete_self": "You cannot delete your own account",
    "cannot_demote_self": "You cannot remove your own admin role",
    "notification_not_owned": "This notification belongs to another user",
    "event_delete_forbidden": "You can only delete events you created",
    "reminder_sweep_forbidden": "Only admins or the scheduler may run the reminder sweep",
}


class Action(str, enum.Enum):
    VIEW_TASK = "view_task"
    UPDATE_TASK = "update_task"
    DELETE_TASK = "delete_task"
    CREATE_TASK_IN_PROJECT = "create_task_in_project"
    COMMENT_ON_TASK = "comment_on_task"
    EDIT_COMMENT = "edit_comment"
    DELETE_COMMENT = "delete_comment"
    CREATE_PROJECT = "create_project"
    VIEW_PROJECT = "view_project"
    UPDATE_PROJECT = "update_project"
    MANAGE_PROJECT_MEMBERS = "manage_project_members"
    DELETE_PROJECT = "delete_project"
    MANAGE_USERS = "manage_users"
    DELETE_EVENT = "delete_event"


class ResourceType(str, enum.Enum):
    PROJECT = "project"
    TASK = "task"
    COMMENT = "comment"
    EVENT = "event"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.allowed

    @property
    def message(self) -> Optional[str]:
        return REASONS.get(self.reason, self.reason) if self.reason else None

    def require(self) -> None:
        """Raise ``Forbidden`` carrying the denial reason."""
        if not self.allowed:
            raise Forbidden(self.message, code=self.reason)


ALLOW = Decision(True)


def deny(reason: str) -> Decision:
    return Decision(False, reason)


# ----------------------------- ROLE HIERARCHY ----------------------------- #
def role_rank(role) -> int:
    return ROLE_RANK[UserRole(role)]


def has_min_role(user, role) -> bool:
    """True iff ``user``'s role ranks at or above ``role``."""
    return role_rank(user.role) >= role_rank(role)


def is_admin(user) -> bool:
    return UserRole(user.role) == UserRole.ADMIN


def is_elevated(user) -> bool:
    """Admins and supervisors see and edit across ownership boundaries."""
    return has_min_role(user, UserRole.SUPERVISOR)


def can_access_resource(user, resource_owner_id, resource_type) -> bool:
    """
    Ownership gate.

    Managers get no blanket access: a manager passes only for projects they
    own, exactly like any other owner.
    """
    if is_elevated(user):
        return True
    return user.id == resource_owner_id


# --------------------------------- TASKS ---------------------------------- #
def _owns_task_project(user, task) -> bool:
    owner_id = getattr(task, "project_owner_id", None)
    return owner_id is not None and owner_id == user.id


def _is_full_editor(user, task) -> bool:
    return is_elevated(user) or _owns_task_project(user, task) or task.created_by == user.id


def can_view_task(user, task) -> Decision:
    if _is_full_editor(user, task) or user.id in task.assignee_ids:
        return ALLOW
    return deny("task_view_forbidden")


def can_update_task(user, task, fields: Iterable[str]) -> Decision:
    """
    Gate an update of ``fields`` on ``task``.

    Full editors may change anything. Assignees may change ``status`` and
    nothing else; extra fields are refused rather than ignored. A completed
    task is locked for everyone except its creator.
    """
    fields = set(fields)
    full_editor = _is_full_editor(user, task)
    assignee = user.id in task.assignee_ids

    if not full_editor and not assignee:
        return deny("task_update_forbidden")

    if TaskStatus(task.status) == TaskStatus.COMPLETED and task.created_by != user.id:
        return deny("task_completed_locked")

    if not full_editor and fields - {"status"}:
        return deny("assignee_status_only")

    return ALLOW


def can_delete_task(user, task) -> Decision:
    if is_admin(user) or _owns_task_project(user, task) or task.created_by == user.id:
        return ALLOW
    return deny("task_delete_forbidden")


def can_create_task_in_project(user, project) -> Decision:
    if can_access_resource(user, project.owner_id, ResourceType.PROJECT):
        return ALLOW
    if user.id in project.member_ids:
        return ALLOW
    return deny("task_create_forbidden")


# -------------------------------- COMMENTS -------------------------------- #
def can_edit_comment(user, comment) -> Decision:
    if comment.author_id == user.id:
        return ALLOW
    return deny("comment_edit_forbidden")


def can_delete_comment(user, comment, task) -> Decision:
    # No admin override for comments
    if comment.author_id == user.id or task.created_by == user.id:
        return ALLOW
    return deny("comment_delete_forbidden")


# -------------------------------- PROJECTS -------------------------------- #
def can_create_project(user) -> Decision:
    if has_min_role(user, UserRole.MANAGER):
        return ALLOW
    return deny("insufficient_role")


def can_view_project(user, project) -> Decision:
    if can_access_resource(user, project.owner_id, ResourceType.PROJECT) or user.id in project.member_ids:
        return ALLOW
    return deny("project_access_denied")


def can_update_project(user, project) -> Decision:
    if can_access_resource(user, project.owner_id, ResourceType.PROJECT):
        return ALLOW
    return deny("project_update_forbidden")


def can_manage_members(user, project) -> Decision:
    if can_access_resource(user, project.owner_id, ResourceType.PROJECT):
        return ALLOW
    return deny("project_members_forbidden")


def can_delete_project(user, project) -> Decision:
    # Supervisors can update but not delete
    if project.owner_id == user.id or is_admin(user):
        return ALLOW
    return deny("project_delete_forbidden")


# ------------------------------ USERS / MISC ------------------------------ #
def can_manage_users(user) -> Decision:
    if is_admin(user):
        return ALLOW
    return deny("admin_required")


def can_delete_event(user, event) -> Decision:
    if event.created_by == user.id:
        return ALLOW
    return deny("event_delete_forbidden")


def can_perform(user, action, resource=None, **context) -> Decision:
    """
    Single entry point for authorization decisions.

    ``context`` carries the extra facts some actions need: ``fields`` for
    ``UPDATE_TASK`` and ``task`` for ``DELETE_COMMENT``.
    """
    action = Action(action)
    if action == Action.VIEW_TASK:
        return can_view_task(user, resource)
    if action == Action.UPDATE_TASK:
        return can_update_task(user, resource, context.get("fields", ()))
    if action == Action.DELETE_TASK:
        return can_delete_task(user, resource)
    if action == Action.CREATE_TASK_IN_PROJECT:
        return can_create_task_in_project(user, resource)
    if action == Action.COMMENT_ON_TASK:
        return can_view_task(user, resource)
    if action == Action.EDIT_COMMENT:
        return can_edit_comment(user, resource)
    if action == Action.DELETE_COMMENT:
        return can_delete_comment(user, resource, context["task"])
    if action == Action.CREATE_PROJECT:
        return can_create_project(user)
    if action == Action.VIEW_PROJECT:
        return can_view_project(user, resource)
    if action == Action.UPDATE_PROJECT:
        return can_update_project(user, resource)
    if action == Action.MANAGE_PROJECT_MEMBERS:
        return can_manage_members(user, resource)
    if action == Action.DELETE_PROJECT:
        return can_delete_project(user, resource)
    if action == Action.MANAGE_USERS:
        return can_manage_users(user)
    if action == Action.DELETE_EVENT:
        return can_delete_event(user, resource)
    raise ValueError(f"Unhandled action: {action}")
