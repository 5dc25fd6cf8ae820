from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from taskflow.db.base import get_db
from taskflow.core.deps import get_current_user
from taskflow.models.user import User
from taskflow.schemas.user import UserResponse, UserRoleUpdate, PasswordReset, MessageResponse
from taskflow.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"])

@router.get("/", response_model=List[UserResponse])
def list_users(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return UserService(db).list_users()

@router.put("/{user_id}/role", response_model=UserResponse)
def update_user_role(
    user_id: int,
    data: UserRoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return UserService(db).update_role(user_id, data.role, current_user)

@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    name = UserService(db).delete_user(user_id, current_user)
    return {"message": f"User {name} has been deleted successfully"}

@router.post("/{user_id}/reset-password", response_model=MessageResponse)
def reset_password(
    user_id: int,
    data: PasswordReset,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    target = UserService(db).reset_password(user_id, data.new_password, current_user)
    return {
        "message": f"Password for {target.name} has been reset successfully. User will need to log in again."
    }
