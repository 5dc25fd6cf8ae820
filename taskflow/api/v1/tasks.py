from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
from taskflow.db.base import get_db
from taskflow.core.deps import get_current_user
from taskflow.models.user import User
from taskflow.models.task import TaskStatus
from taskflow.schemas.task import TaskCreate, TaskUpdate, TaskStatusUpdate, TaskResponse
from taskflow.schemas.user import MessageResponse
from taskflow.services.task_service import TaskService

router = APIRouter(prefix="/tasks", tags=["Tasks"])

@router.get("/", response_model=List[TaskResponse])
def list_tasks(
    my_tasks: bool = Query(False),
    created_by_me: bool = Query(False),
    task_status: Optional[TaskStatus] = Query(None, alias="status"),
    project_id: Optional[int] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    service = TaskService(db)
    return service.list_tasks(
        current_user,
        my_tasks=my_tasks,
        created_by_me=created_by_me,
        status=task_status,
        project_id=project_id,
        start_date=start_date,
        end_date=end_date
    )

@router.post("/", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    task_data: TaskCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    service = TaskService(db)
    return service.create_task(task_data, current_user)

@router.get("/{task_id}", response_model=TaskResponse)
def get_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    service = TaskService(db)
    return service.get_task(task_id, current_user)

@router.patch("/{task_id}", response_model=TaskResponse)
def update_task(
    task_id: int,
    task_data: TaskUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    service = TaskService(db)
    return service.update_task(task_id, task_data, current_user)

@router.patch("/{task_id}/status", response_model=TaskResponse)
def update_task_status(
    task_id: int,
    data: TaskStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    service = TaskService(db)
    return service.update_status(task_id, data.status, current_user)

@router.delete("/{task_id}", response_model=MessageResponse)
def delete_task(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    service = TaskService(db)
    service.delete_task(task_id, current_user)
    return {"message": "Task deleted successfully"}
