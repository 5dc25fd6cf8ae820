import hmac
from fastapi import APIRouter, Depends, Header
from sqlalchemy.orm import Session
from typing import Optional
from taskflow.db.base import get_db
from taskflow.core.config import settings
from taskflow.core.deps import get_current_user, get_bearer_token
from taskflow.core.permissions import deny, is_admin
from taskflow.models.user import User
from taskflow.schemas.notification import NotificationResponse, NotificationListResponse, SweepResponse
from taskflow.schemas.user import MessageResponse
from taskflow.services.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])

@router.get("/", response_model=NotificationListResponse)
def list_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    notifications, unread_count = NotificationService(db).list_for_user(current_user.id)
    return {"notifications": notifications, "unread_count": unread_count}

@router.get("/unread-count")
def unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return {"unread_count": NotificationService(db).unread_count(current_user.id)}

@router.patch("/{notification_id}/read", response_model=NotificationResponse)
def mark_read(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return NotificationService(db).mark_read(notification_id, current_user)

@router.post("/read-all", response_model=MessageResponse)
def mark_all_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    NotificationService(db).mark_all_read(current_user)
    return {"message": "All notifications marked as read"}

def _authorize_sweep(
    x_reminder_secret: Optional[str],
    authorization: Optional[str],
    db: Session
) -> None:
    """The scheduler authenticates with the shared secret; people need an admin token."""
    secret = settings.REMINDER_SWEEP_SECRET
    if secret and x_reminder_secret and hmac.compare_digest(secret, x_reminder_secret):
        return
    user = get_current_user(get_bearer_token(authorization), db)
    if not is_admin(user):
        deny("reminder_sweep_forbidden").require()

@router.post("/check-reminders", response_model=SweepResponse)
def check_reminders(
    x_reminder_secret: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
    db: Session = Depends(get_db)
):
    _authorize_sweep(x_reminder_secret, authorization, db)
    result = NotificationService(db).run_reminder_sweep()
    return result.to_dict()
