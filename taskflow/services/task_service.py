import logging
from sqlalchemy.orm import Session
from sqlalchemy import or_
from typing import Iterable, List, Optional
from datetime import date, datetime, time

from taskflow.core.clock import utcnow, to_naive_utc
from taskflow.core.exceptions import InvalidArgument, NotFound
from taskflow.core.permissions import Action, can_perform, is_elevated
from taskflow.models.notification import Notification, NotificationType
from taskflow.models.project import Project
from taskflow.models.task import Task, TaskAssignment, TaskStatus, TaskPriority, MAX_ASSIGNEES
from taskflow.models.user import User
from taskflow.schemas.task import TaskCreate, TaskUpdate
from taskflow.services.comment_service import delete_task_comments
from taskflow.services.hooks import PostCommitHooks
from taskflow.services.notification_service import NotificationService
from taskflow.services.task_lifecycle import apply_status, parse_status

logger = logging.getLogger(__name__)

NON_NULLABLE_FIELDS = ("title", "status", "priority", "assignee_ids")


def delete_tasks(db: Session, tasks: Iterable[Task]) -> int:
    """Delete tasks with their comment trees and assignments; caller commits"""
    task_ids = [task.id for task in tasks]
    for task_id in task_ids:
        delete_task_comments(db, task_id)
        db.query(TaskAssignment).filter(TaskAssignment.task_id == task_id).delete(synchronize_session=False)
        db.query(Task).filter(Task.id == task_id).delete(synchronize_session=False)
    db.expire_all()
    return len(task_ids)


class TaskService:
    def __init__(self, db: Session):
        self.db = db

    # ---- validation ----

    def _clean_assignees(self, assignee_ids: Iterable[int]) -> List[int]:
        unique_ids = list(dict.fromkeys(assignee_ids))
        if not unique_ids:
            raise InvalidArgument("At least one assignee is required", code="assignee_required")
        if len(unique_ids) > MAX_ASSIGNEES:
            raise InvalidArgument(
                f"Maximum {MAX_ASSIGNEES} people can be assigned to a task",
                code="too_many_assignees"
            )
        found = self.db.query(User.id).filter(User.id.in_(unique_ids)).count()
        if found != len(unique_ids):
            raise InvalidArgument("Some assignee IDs are invalid", code="unknown_assignee")
        return unique_ids

    @staticmethod
    def _clean_title(title: Optional[str]) -> str:
        title = (title or "").strip()
        if not title:
            raise InvalidArgument("Task title is required", code="title_required")
        return title

    # ---- reads ----

    def _get(self, task_id: int) -> Task:
        task = self.db.query(Task).filter(Task.id == task_id).first()
        if not task:
            raise NotFound("Task not found", code="task_not_found")
        return task

    def get_task(self, task_id: int, user: User) -> Task:
        task = self._get(task_id)
        can_perform(user, Action.VIEW_TASK, task).require()
        return task

    def list_tasks(
        self,
        user: User,
        my_tasks: bool = False,
        created_by_me: bool = False,
        status: Optional[TaskStatus] = None,
        project_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> List[Task]:
        query = self.db.query(Task)

        # Admins and supervisors see everything; others see their own work
        if not is_elevated(user):
            query = query.filter(
                or_(
                    Task.created_by == user.id,
                    Task.assignees.any(TaskAssignment.user_id == user.id),
                    Task.project.has(Project.owner_id == user.id)
                )
            )

        if my_tasks:
            query = query.filter(Task.assignees.any(TaskAssignment.user_id == user.id))

        if created_by_me:
            query = query.filter(Task.created_by == user.id)

        if status is not None:
            query = query.filter(Task.status == parse_status(status))

        if project_id is not None:
            query = query.filter(Task.project_id == project_id)

        # Completed tasks are ranged by completion time, the rest by due date
        if start_date or end_date:
            column = Task.completed_at if status == TaskStatus.COMPLETED else Task.due_date
            if start_date:
                query = query.filter(column >= datetime.combine(start_date, time.min))
            if end_date:
                query = query.filter(column <= datetime.combine(end_date, time.max))

        return query.order_by(Task.created_at.desc(), Task.id.desc()).all()

    # ---- writes ----

    def _notify_assigned(self, task: Task, user_ids: Iterable[int], now: datetime) -> None:
        hooks = PostCommitHooks(self.db)
        for user_id in user_ids:
            hooks.add(
                f"notify_assigned task={task.id} user={user_id}",
                lambda db, uid=user_id: NotificationService(db).create_assigned(task, uid, now)
            )
        failed = hooks.run()
        if failed:
            logger.warning("Task %s created but %s assignment notifications failed", task.id, failed)

    def create_task(self, task_data: TaskCreate, creator: User, now: Optional[datetime] = None) -> Task:
        now = now or utcnow()
        title = self._clean_title(task_data.title)
        assignee_ids = self._clean_assignees(task_data.assignee_ids)

        if task_data.project_id is not None:
            project = self.db.query(Project).filter(Project.id == task_data.project_id).first()
            if not project:
                raise NotFound("Project not found", code="project_not_found")
            can_perform(creator, Action.CREATE_TASK_IN_PROJECT, project).require()

        task = Task(
            title=title,
            description=task_data.description,
            equipment=task_data.equipment,
            area=task_data.area,
            status=TaskStatus.PENDING,
            priority=task_data.priority or TaskPriority.MEDIUM,
            due_date=to_naive_utc(task_data.due_date),
            created_by=creator.id,
            project_id=task_data.project_id,
            created_at=now,
            updated_at=now
        )
        self.db.add(task)
        self.db.flush()

        # Add assignees
        for assignee_id in assignee_ids:
            self.db.add(TaskAssignment(task_id=task.id, user_id=assignee_id, assigned_at=now))

        self.db.commit()
        self.db.refresh(task)
        logger.info("Task %s created by user %s", task.id, creator.id)

        self._notify_assigned(task, assignee_ids, now)
        self.db.refresh(task)
        return task

    def update_task(
        self,
        task_id: int,
        task_data: TaskUpdate,
        user: User,
        now: Optional[datetime] = None
    ) -> Task:
        now = now or utcnow()
        task = self._get(task_id)
        changes = task_data.model_dump(exclude_unset=True)

        for field in NON_NULLABLE_FIELDS:
            if field in changes and changes[field] is None:
                raise InvalidArgument(f"{field} cannot be null", code="invalid_argument")
        if "title" in changes:
            changes["title"] = self._clean_title(changes["title"])
        if "status" in changes:
            changes["status"] = parse_status(changes["status"])

        can_perform(user, Action.UPDATE_TASK, task, fields=changes.keys()).require()

        # Looks users up, so only after the caller is known to be allowed
        if "assignee_ids" in changes:
            changes["assignee_ids"] = self._clean_assignees(changes["assignee_ids"])

        added_assignees = []
        for field, value in changes.items():
            if field == "status":
                apply_status(task, value, now)
            elif field == "assignee_ids":
                added_assignees = self._replace_assignees(task, value, now)
            elif field == "due_date":
                task.due_date = to_naive_utc(value)
            else:
                setattr(task, field, value)

        self.db.commit()
        self.db.refresh(task)

        if added_assignees:
            self._notify_assigned(task, added_assignees, now)
            self.db.refresh(task)
        return task

    def update_status(self, task_id: int, status, user: User, now: Optional[datetime] = None) -> Task:
        return self.update_task(task_id, TaskUpdate(status=parse_status(status)), user, now)

    def _replace_assignees(self, task: Task, assignee_ids: List[int], now: datetime) -> List[int]:
        current = set(task.assignee_ids)
        wanted = set(assignee_ids)
        removed = current - wanted
        added = [uid for uid in assignee_ids if uid not in current]

        if removed:
            self.db.query(TaskAssignment).filter(
                TaskAssignment.task_id == task.id,
                TaskAssignment.user_id.in_(removed)
            ).delete(synchronize_session="fetch")
            # Unassigned users stop getting reminders for this task
            self.db.query(Notification).filter(
                Notification.task_id == task.id,
                Notification.user_id.in_(removed),
                Notification.type == NotificationType.ASSIGNED
            ).update({Notification.next_reminder_at: None}, synchronize_session="fetch")
        for user_id in added:
            self.db.add(TaskAssignment(task_id=task.id, user_id=user_id, assigned_at=now))
        self.db.flush()
        self.db.expire(task, ["assignees"])
        return added

    def delete_task(self, task_id: int, user: User) -> None:
        task = self._get(task_id)
        can_perform(user, Action.DELETE_TASK, task).require()
        delete_tasks(self.db, [task])
        self.db.commit()
        logger.info("Task %s deleted by user %s", task_id, user.id)
