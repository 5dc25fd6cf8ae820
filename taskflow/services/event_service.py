from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session

from taskflow.core.clock import utcnow, to_naive_utc
from taskflow.core.exceptions import InvalidArgument, NotFound
from taskflow.core.permissions import Action, can_perform
from taskflow.models.event import Event
from taskflow.models.user import User
from taskflow.schemas.event import EventCreate


class EventService:
    def __init__(self, db: Session):
        self.db = db

    def list_events(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        now: Optional[datetime] = None
    ) -> List[Event]:
        """Events in a date range; only upcoming ones when no range is given"""
        query = self.db.query(Event)
        start, end = to_naive_utc(start), to_naive_utc(end)
        if start or end:
            if start:
                query = query.filter(Event.event_date >= start)
            if end:
                query = query.filter(Event.event_date <= end)
        else:
            query = query.filter(Event.event_date >= (now or utcnow()))
        return query.order_by(Event.event_date.asc()).all()

    def create_event(self, data: EventCreate, user: User) -> Event:
        title = data.title.strip()
        if not title:
            raise InvalidArgument("Title and event date are required", code="title_required")
        event = Event(
            title=title,
            description=data.description,
            event_date=to_naive_utc(data.event_date),
            created_by=user.id
        )
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)
        return event

    def delete_event(self, event_id: int, user: User) -> None:
        event = self.db.query(Event).filter(Event.id == event_id).first()
        if not event:
            raise NotFound("Event not found", code="event_not_found")
        can_perform(user, Action.DELETE_EVENT, event).require()
        self.db.delete(event)
        self.db.commit()
