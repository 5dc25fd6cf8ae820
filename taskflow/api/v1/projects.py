from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from taskflow.db.base import get_db
from taskflow.core.deps import get_current_user
from taskflow.models.user import User
from taskflow.schemas.project import ProjectCreate, ProjectUpdate, ProjectResponse, MemberRequest
from taskflow.schemas.user import MessageResponse
from taskflow.services.project_service import ProjectService

router = APIRouter(prefix="/projects", tags=["Projects"])

@router.get("/", response_model=List[ProjectResponse])
def list_projects(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ProjectService(db).list_projects(current_user)

@router.post("/", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def create_project(
    data: ProjectCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ProjectService(db).create_project(data, current_user)

@router.get("/{project_id}", response_model=ProjectResponse)
def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ProjectService(db).get_project(project_id, current_user)

@router.put("/{project_id}", response_model=ProjectResponse)
def update_project(
    project_id: int,
    data: ProjectUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ProjectService(db).update_project(project_id, data, current_user)

@router.delete("/{project_id}", response_model=MessageResponse)
def delete_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    ProjectService(db).delete_project(project_id, current_user)
    return {"message": "Project deleted successfully"}

@router.post("/{project_id}/members", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
def add_member(
    project_id: int,
    data: MemberRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ProjectService(db).add_member(project_id, data.user_id, current_user)

@router.delete("/{project_id}/members/{user_id}", response_model=ProjectResponse)
def remove_member(
    project_id: int,
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return ProjectService(db).remove_member(project_id, user_id, current_user)
