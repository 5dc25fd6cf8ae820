import logging
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskflow.core.exceptions import Conflict, InvalidArgument, NotFound
from taskflow.core.permissions import Action, can_perform, is_elevated
from taskflow.models.project import Project, ProjectMember
from taskflow.models.task import Task
from taskflow.models.user import User, UserRole
from taskflow.schemas.project import ProjectCreate, ProjectUpdate
from taskflow.services.task_service import delete_tasks

logger = logging.getLogger(__name__)


def delete_projects(db: Session, projects: Iterable[Project]) -> int:
    """Delete projects together with their tasks and memberships; caller commits"""
    project_ids = [project.id for project in projects]
    for project_id in project_ids:
        delete_tasks(db, db.query(Task).filter(Task.project_id == project_id).all())
        db.query(ProjectMember).filter(ProjectMember.project_id == project_id).delete(synchronize_session=False)
        db.query(Project).filter(Project.id == project_id).delete(synchronize_session=False)
    db.expire_all()
    return len(project_ids)


class ProjectService:
    def __init__(self, db: Session):
        self.db = db

    def _get(self, project_id: int) -> Project:
        project = self.db.query(Project).filter(Project.id == project_id).first()
        if not project:
            raise NotFound("Project not found", code="project_not_found")
        return project

    @staticmethod
    def _clean_name(name: Optional[str]) -> str:
        name = (name or "").strip()
        if not name:
            raise InvalidArgument("Project name is required", code="project_name_required")
        return name

    def _clean_members(self, member_ids: Iterable[int], owner_id: int) -> List[int]:
        # Owner is an implicit member and never stored
        unique_ids = [uid for uid in dict.fromkeys(member_ids) if uid != owner_id]
        if unique_ids:
            found = self.db.query(User.id).filter(User.id.in_(unique_ids)).count()
            if found != len(unique_ids):
                raise InvalidArgument("Some member IDs are invalid", code="unknown_member")
        return unique_ids

    def list_projects(self, user: User) -> List[Project]:
        """
        - Admin/Supervisor: all projects
        - Manager: projects they own
        - Worker: projects they are a member of
        """
        query = self.db.query(Project)
        if is_elevated(user):
            pass
        elif UserRole(user.role) == UserRole.MANAGER:
            query = query.filter(Project.owner_id == user.id)
        else:
            query = query.filter(Project.members.any(ProjectMember.user_id == user.id))
        return query.order_by(Project.created_at.desc(), Project.id.desc()).all()

    def create_project(self, data: ProjectCreate, user: User) -> Project:
        can_perform(user, Action.CREATE_PROJECT).require()
        name = self._clean_name(data.name)
        member_ids = self._clean_members(data.members, user.id)

        project = Project(
            name=name,
            description=(data.description or "").strip() or None,
            owner_id=user.id
        )
        self.db.add(project)
        self.db.flush()
        for member_id in member_ids:
            self.db.add(ProjectMember(project_id=project.id, user_id=member_id))
        self.db.commit()
        self.db.refresh(project)
        logger.info("Project %s created by user %s", project.id, user.id)
        return project

    def get_project(self, project_id: int, user: User) -> Project:
        project = self._get(project_id)
        can_perform(user, Action.VIEW_PROJECT, project).require()
        return project

    def update_project(self, project_id: int, data: ProjectUpdate, user: User) -> Project:
        project = self._get(project_id)
        can_perform(user, Action.UPDATE_PROJECT, project).require()

        changes = data.model_dump(exclude_unset=True)
        if "name" in changes:
            project.name = self._clean_name(changes["name"])
        if "description" in changes:
            project.description = (changes["description"] or "").strip() or None
        if "members" in changes:
            if changes["members"] is None:
                raise InvalidArgument("Members must be a list", code="invalid_members")
            self._replace_members(project, self._clean_members(changes["members"], project.owner_id))

        self.db.commit()
        self.db.refresh(project)
        return project

    def _replace_members(self, project: Project, member_ids: List[int]) -> None:
        current = set(project.member_ids)
        wanted = set(member_ids)
        removed = current - wanted
        if removed:
            self.db.query(ProjectMember).filter(
                ProjectMember.project_id == project.id,
                ProjectMember.user_id.in_(removed)
            ).delete(synchronize_session="fetch")
        for member_id in member_ids:
            if member_id not in current:
                self.db.add(ProjectMember(project_id=project.id, user_id=member_id))
        self.db.flush()
        self.db.expire(project, ["members"])

    def delete_project(self, project_id: int, user: User) -> None:
        project = self._get(project_id)
        can_perform(user, Action.DELETE_PROJECT, project).require()
        delete_projects(self.db, [project])
        self.db.commit()
        logger.info("Project %s deleted by user %s", project_id, user.id)

    def add_member(self, project_id: int, member_id: int, user: User) -> Project:
        project = self._get(project_id)
        can_perform(user, Action.MANAGE_PROJECT_MEMBERS, project).require()

        if not self.db.query(User).filter(User.id == member_id).first():
            raise NotFound("User not found", code="user_not_found")
        if project.owner_id == member_id:
            raise Conflict("User is already the project owner", code="already_owner")

        # The unique (project, user) row makes concurrent adds safe
        self.db.add(ProjectMember(project_id=project.id, user_id=member_id))
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise Conflict("User is already a member of this project", code="already_member") from None

        self.db.refresh(project)
        return project

    def remove_member(self, project_id: int, member_id: int, user: User) -> Project:
        project = self._get(project_id)
        can_perform(user, Action.MANAGE_PROJECT_MEMBERS, project).require()

        if project.owner_id == member_id:
            raise InvalidArgument("Cannot remove the project owner", code="cannot_remove_owner")

        removed = self.db.query(ProjectMember).filter(
            ProjectMember.project_id == project.id,
            ProjectMember.user_id == member_id
        ).delete(synchronize_session="fetch")
        if not removed:
            self.db.rollback()
            raise NotFound("User is not a member of this project", code="member_not_found")

        self.db.commit()
        self.db.refresh(project)
        return project
