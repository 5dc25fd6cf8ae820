from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List
from taskflow.db.base import get_db
from taskflow.core.deps import get_current_user
from taskflow.models.user import User
from taskflow.schemas.comment import CommentCreate, CommentUpdate, CommentResponse, CommentNode
from taskflow.schemas.user import MessageResponse
from taskflow.services.comment_service import CommentService

router = APIRouter(prefix="/tasks/{task_id}/comments", tags=["Comments"])

@router.get("/", response_model=List[CommentNode])
def list_comments(
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return CommentService(db).list_tree(task_id, current_user)

@router.post("/", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
def create_comment(
    task_id: int,
    data: CommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return CommentService(db).create_comment(task_id, current_user, data.content, data.parent_id)

@router.patch("/{comment_id}", response_model=CommentResponse)
def update_comment(
    task_id: int,
    comment_id: int,
    data: CommentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return CommentService(db).update_comment(task_id, comment_id, current_user, data.content)

@router.delete("/{comment_id}", response_model=MessageResponse)
def delete_comment(
    task_id: int,
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    CommentService(db).delete_comment(task_id, comment_id, current_user)
    return {"message": "Comment deleted successfully"}
