from types import SimpleNamespace

import pytest

from taskflow.core.exceptions import Forbidden
from taskflow.core.permissions import (
    Action,
    ResourceType,
    can_access_resource,
    can_perform,
    has_min_role,
)
from taskflow.models import TaskStatus, UserRole


def _user(user_id, role=UserRole.WORKER):
    return SimpleNamespace(id=user_id, role=role)


def _task(created_by=1, assignee_ids=(2,), status=TaskStatus.PENDING, project_owner_id=None):
    return SimpleNamespace(
        created_by=created_by,
        assignee_ids=list(assignee_ids),
        status=status,
        project_owner_id=project_owner_id,
    )


def _project(owner_id, member_ids=()):
    return SimpleNamespace(owner_id=owner_id, member_ids=list(member_ids))


@pytest.mark.parametrize(
    "role,minimum,expected",
    [
        (UserRole.WORKER, UserRole.WORKER, True),
        (UserRole.WORKER, UserRole.MANAGER, False),
        (UserRole.MANAGER, UserRole.MANAGER, True),
        (UserRole.MANAGER, UserRole.SUPERVISOR, False),
        (UserRole.SUPERVISOR, UserRole.MANAGER, True),
        (UserRole.ADMIN, UserRole.SUPERVISOR, True),
        ("admin", "worker", True),
    ],
)
def test_role_hierarchy(role, minimum, expected):
    assert has_min_role(_user(1, role), minimum) is expected


def test_manager_has_no_blanket_resource_access():
    manager = _user(5, UserRole.MANAGER)
    assert can_access_resource(manager, 5, ResourceType.PROJECT)
    assert not can_access_resource(manager, 6, ResourceType.PROJECT)
    assert can_access_resource(_user(7, UserRole.SUPERVISOR), 6, ResourceType.PROJECT)
    assert can_access_resource(_user(8, UserRole.ADMIN), 6, "task")


def test_view_task_for_creator_assignee_and_elevated_only():
    task = _task(created_by=1, assignee_ids=[2])
    assert can_perform(_user(1), Action.VIEW_TASK, task)
    assert can_perform(_user(2), Action.VIEW_TASK, task)
    assert can_perform(_user(9, UserRole.SUPERVISOR), Action.VIEW_TASK, task)

    denied = can_perform(_user(3, UserRole.MANAGER), Action.VIEW_TASK, task)
    assert not denied
    assert denied.reason == "task_view_forbidden"


def test_project_owner_can_view_and_edit_tasks_in_their_project():
    task = _task(created_by=1, assignee_ids=[2], project_owner_id=4)
    owner = _user(4, UserRole.MANAGER)
    assert can_perform(owner, Action.VIEW_TASK, task)
    assert can_perform(owner, Action.UPDATE_TASK, task, fields={"title", "priority"})
    assert can_perform(owner, Action.DELETE_TASK, task)


def test_assignee_may_only_change_status():
    task = _task(created_by=1, assignee_ids=[2])
    assignee = _user(2)
    assert can_perform(assignee, Action.UPDATE_TASK, task, fields={"status"})

    decision = can_perform(assignee, Action.UPDATE_TASK, task, fields={"status", "title"})
    assert decision.reason == "assignee_status_only"


def test_unrelated_user_cannot_update_task():
    decision = can_perform(_user(3), Action.UPDATE_TASK, _task(), fields={"status"})
    assert decision.reason == "task_update_forbidden"


def test_completed_task_is_locked_to_its_creator():
    task = _task(created_by=1, assignee_ids=[2], status=TaskStatus.COMPLETED, project_owner_id=4)

    assert can_perform(_user(1), Action.UPDATE_TASK, task, fields={"status"})
    for user in (_user(2), _user(4, UserRole.MANAGER), _user(9, UserRole.ADMIN)):
        decision = can_perform(user, Action.UPDATE_TASK, task, fields={"status"})
        assert decision.reason == "task_completed_locked"


def test_task_deletion_is_not_open_to_supervisors():
    task = _task(created_by=1, assignee_ids=[2])
    assert can_perform(_user(9, UserRole.ADMIN), Action.DELETE_TASK, task)
    assert not can_perform(_user(8, UserRole.SUPERVISOR), Action.DELETE_TASK, task)
    assert not can_perform(_user(2), Action.DELETE_TASK, task)


def test_comment_edit_and_delete_rules():
    task = _task(created_by=1, assignee_ids=[2])
    comment = SimpleNamespace(author_id=2)

    assert can_perform(_user(2), Action.EDIT_COMMENT, comment)
    assert not can_perform(_user(1), Action.EDIT_COMMENT, comment)

    assert can_perform(_user(2), Action.DELETE_COMMENT, comment, task=task)
    assert can_perform(_user(1), Action.DELETE_COMMENT, comment, task=task)
    # No admin override
    decision = can_perform(_user(9, UserRole.ADMIN), Action.DELETE_COMMENT, comment, task=task)
    assert decision.reason == "comment_delete_forbidden"


def test_project_rules():
    project = _project(owner_id=4, member_ids=[2])
    supervisor = _user(8, UserRole.SUPERVISOR)

    assert not can_perform(_user(2), Action.CREATE_PROJECT)
    assert can_perform(_user(4, UserRole.MANAGER), Action.CREATE_PROJECT)

    assert can_perform(_user(2), Action.VIEW_PROJECT, project)
    assert not can_perform(_user(3), Action.VIEW_PROJECT, project)
    assert can_perform(_user(2), Action.CREATE_TASK_IN_PROJECT, project)
    assert not can_perform(_user(5, UserRole.MANAGER), Action.CREATE_TASK_IN_PROJECT, project)

    assert can_perform(supervisor, Action.UPDATE_PROJECT, project)
    assert can_perform(supervisor, Action.MANAGE_PROJECT_MEMBERS, project)
    assert not can_perform(_user(2), Action.MANAGE_PROJECT_MEMBERS, project)

    assert can_perform(_user(4, UserRole.MANAGER), Action.DELETE_PROJECT, project)
    assert can_perform(_user(9, UserRole.ADMIN), Action.DELETE_PROJECT, project)
    assert can_perform(supervisor, Action.DELETE_PROJECT, project).reason == "project_delete_forbidden"


def test_user_management_is_admin_only():
    assert can_perform(_user(9, UserRole.ADMIN), Action.MANAGE_USERS)
    assert can_perform(_user(8, UserRole.SUPERVISOR), Action.MANAGE_USERS).reason == "admin_required"


def test_require_raises_forbidden_with_reason_code():
    with pytest.raises(Forbidden) as exc_info:
        can_perform(_user(3), Action.VIEW_TASK, _task()).require()
    assert exc_info.value.code == "task_view_forbidden"
    assert exc_info.value.status_code == 403


def test_decisions_are_deterministic():
    task = _task(created_by=1, assignee_ids=[2], project_owner_id=4)
    users = [_user(uid, role) for uid in (1, 2, 3, 4) for role in UserRole]
    for user in users:
        for status in TaskStatus:
            task.status = status
            first = can_perform(user, Action.UPDATE_TASK, task, fields={"status"})
            second = can_perform(user, Action.UPDATE_TASK, task, fields={"status"})
            assert first == second
