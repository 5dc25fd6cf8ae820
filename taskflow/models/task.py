from sqlalchemy import Column, Integer, String, Text, DateTime, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
import enum
from taskflow.core.clock import utcnow
from taskflow.db.base import Base

class TaskStatus(str, enum.Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

OPEN_STATUSES = (TaskStatus.PENDING, TaskStatus.IN_PROGRESS)

class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

MAX_ASSIGNEES = 2

class Task(Base):
    __tablename__ = "tasks"
    
    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False, index=True)
    description = Column(Text)
    equipment = Column(String(255))
    area = Column(String(255))
    status = Column(Enum(TaskStatus), default=TaskStatus.PENDING, nullable=False, index=True)
    priority = Column(Enum(TaskPriority), default=TaskPriority.MEDIUM, nullable=False, index=True)
    due_date = Column(DateTime, nullable=True, index=True)
    completed_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    
    # Foreign Keys
    created_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True)
    
    # Relationships
    creator = relationship("User", back_populates="created_tasks", foreign_keys=[created_by])
    project = relationship("Project", back_populates="tasks")
    assignees = relationship("TaskAssignment", back_populates="task", cascade="all, delete-orphan")

    @property
    def assignee_ids(self) -> list:
        return sorted(a.user_id for a in self.assignees)

    @property
    def project_owner_id(self):
        return self.project.owner_id if self.project is not None else None

class TaskAssignment(Base):
    __tablename__ = "task_assignments"
    __table_args__ = (UniqueConstraint("task_id", "user_id", name="ux_task_assignments_task_user"),)
    
    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    assigned_at = Column(DateTime, default=utcnow)
    
    # Relationships
    task = relationship("Task", back_populates="assignees")
    assignee = relationship("User", back_populates="assigned_tasks")
