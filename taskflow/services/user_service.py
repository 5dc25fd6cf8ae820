import logging
from collections import defaultdict
from typing import List

from sqlalchemy.orm import Session

from taskflow.core.config import settings
from taskflow.core.exceptions import InvalidArgument, NotFound
from taskflow.core.permissions import Action, can_perform, deny
from taskflow.core.security import get_password_hash
from taskflow.models.comment import Comment
from taskflow.models.event import Event
from taskflow.models.notification import Notification
from taskflow.models.project import Project, ProjectMember
from taskflow.models.task import Task, TaskAssignment
from taskflow.models.token import RefreshToken
from taskflow.models.user import User, UserRole
from taskflow.services.auth_service import AuthService
from taskflow.services.comment_service import delete_comment_subtrees
from taskflow.services.project_service import delete_projects
from taskflow.services.task_service import delete_tasks

logger = logging.getLogger(__name__)

VALID_ROLES = tuple(r.value for r in UserRole)


class UserService:
    def __init__(self, db: Session):
        self.db = db

    def _get(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFound("User not found", code="user_not_found")
        return user

    def list_users(self) -> List[User]:
        return self.db.query(User).order_by(User.name.asc(), User.id.asc()).all()

    def update_role(self, user_id: int, role: str, admin: User) -> User:
        can_perform(admin, Action.MANAGE_USERS).require()
        if role not in VALID_ROLES:
            raise InvalidArgument(
                f"Invalid role. Expected one of: {', '.join(VALID_ROLES)}",
                code="invalid_role"
            )
        target = self._get(user_id)
        new_role = UserRole(role)
        if target.id == admin.id and new_role != UserRole.ADMIN:
            deny("cannot_demote_self").require()

        target.role = new_role
        self.db.commit()
        self.db.refresh(target)
        logger.info("User %s role set to %s by %s", target.id, new_role.value, admin.id)
        return target

    def reset_password(self, user_id: int, new_password: str, admin: User) -> User:
        can_perform(admin, Action.MANAGE_USERS).require()
        if not new_password or len(new_password) < settings.RESET_PASSWORD_MIN_LENGTH:
            raise InvalidArgument(
                f"Password must be at least {settings.RESET_PASSWORD_MIN_LENGTH} characters long",
                code="password_too_short"
            )
        target = self._get(user_id)

        target.password_hash = get_password_hash(new_password)
        # Force re-login everywhere
        revoked = AuthService(self.db).revoke_all(target.id)
        self.db.commit()
        self.db.refresh(target)
        logger.info("Password reset for user %s by %s, %s sessions revoked", target.id, admin.id, revoked)
        return target

    def delete_user(self, user_id: int, admin: User) -> str:
        can_perform(admin, Action.MANAGE_USERS).require()
        if user_id == admin.id:
            deny("cannot_delete_self").require()
        target = self._get(user_id)
        target_id, target_name = target.id, target.name

        # Comments first, with their reply subtrees
        comments_by_task = defaultdict(list)
        for row in self.db.query(Comment.id, Comment.task_id).filter(Comment.author_id == target_id):
            comments_by_task[row.task_id].append(row.id)
        for task_id, comment_ids in comments_by_task.items():
            delete_comment_subtrees(self.db, task_id, comment_ids)

        delete_projects(self.db, self.db.query(Project).filter(Project.owner_id == target_id).all())
        delete_tasks(self.db, self.db.query(Task).filter(Task.created_by == target_id).all())

        for model, column in (
            (TaskAssignment, TaskAssignment.user_id),
            (ProjectMember, ProjectMember.user_id),
            (Notification, Notification.user_id),
            (RefreshToken, RefreshToken.user_id),
            (Event, Event.created_by),
        ):
            self.db.query(model).filter(column == target_id).delete(synchronize_session=False)

        self.db.query(User).filter(User.id == target_id).delete(synchronize_session=False)
        self.db.commit()
        self.db.expire_all()
        logger.info("User %s deleted by %s", target_id, admin.id)
        return target_name
