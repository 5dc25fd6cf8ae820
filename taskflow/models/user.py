from sqlalchemy import Column, Integer, String, DateTime, Enum
from sqlalchemy.orm import relationship
import enum
from taskflow.core.clock import utcnow
from taskflow.db.base import Base

class UserRole(str, enum.Enum):
    WORKER = "worker"
    MANAGER = "manager"
    SUPERVISOR = "supervisor"
    ADMIN = "admin"

class User(Base):
    __tablename__ = "users"
    
    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    password_hash = Column(String, nullable=False)
    role = Column(Enum(UserRole), default=UserRole.WORKER, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    
    # Relationships
    created_tasks = relationship("Task", back_populates="creator", foreign_keys="Task.created_by", passive_deletes=True)
    assigned_tasks = relationship("TaskAssignment", back_populates="assignee", passive_deletes=True)
    owned_projects = relationship("Project", back_populates="owner", passive_deletes=True)
    refresh_tokens = relationship("RefreshToken", back_populates="user", cascade="all, delete-orphan")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<User {self.email} ({self.role.value})>"
