from pydantic import BaseModel
from datetime import datetime
from typing import Optional, List
from taskflow.models.notification import NotificationType

class NotificationResponse(BaseModel):
    id: int
    user_id: int
    task_id: Optional[int] = None
    type: NotificationType
    message: str
    is_read: bool
    next_reminder_at: Optional[datetime] = None
    expires_at: datetime
    created_at: datetime
    
    class Config:
        from_attributes = True

class NotificationListResponse(BaseModel):
    notifications: List[NotificationResponse]
    unread_count: int

class SweepResponse(BaseModel):
    reminders_created: int
    chains_stopped: int
    skipped: int
    failed: int
    expired_purged: int
