from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import datetime
from taskflow.db.base import get_db
from taskflow.core.deps import get_current_user
from taskflow.models.user import User
from taskflow.schemas.event import EventCreate, EventResponse
from taskflow.schemas.user import MessageResponse
from taskflow.services.event_service import EventService

router = APIRouter(prefix="/events", tags=["Events"])

@router.get("/", response_model=List[EventResponse])
def list_events(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return EventService(db).list_events(start_date, end_date)

@router.post("/", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
def create_event(
    data: EventCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return EventService(db).create_event(data, current_user)

@router.delete("/{event_id}", response_model=MessageResponse)
def delete_event(
    event_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    EventService(db).delete_event(event_id, current_user)
    return {"message": "Event deleted successfully"}
