from pydantic import BaseModel, EmailStr
from datetime import datetime
from typing import Optional
from taskflow.models.user import UserRole

class UserBase(BaseModel):
    email: EmailStr
    name: str

class UserResponse(UserBase):
    id: int
    role: UserRole
    created_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class UserRoleUpdate(BaseModel):
    role: str

class PasswordReset(BaseModel):
    new_password: str

class MessageResponse(BaseModel):
    message: str
