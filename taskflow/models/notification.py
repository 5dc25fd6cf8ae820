from sqlalchemy import Column, Integer, Text, Boolean, DateTime, Enum, ForeignKey
import enum
from taskflow.core.clock import utcnow
from taskflow.db.base import Base

class NotificationType(str, enum.Enum):
    ASSIGNED = "assigned"
    COMMENT = "comment"
    REMINDER = "reminder"

class Notification(Base):
    """
    In-app notification with a hard time-to-live.

    ``next_reminder_at`` is only used on ``assigned`` notifications and drives
    the reminder chain; ``expires_at`` is fixed at creation and the row is
    deleted once it passes, read or not.
    """

    __tablename__ = "notifications"
    
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    # Survives task deletion; the reminder sweep skips orphans until they expire
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True, index=True)
    type = Column(Enum(NotificationType), nullable=False, index=True)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    next_reminder_at = Column(DateTime, nullable=True, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, index=True)
