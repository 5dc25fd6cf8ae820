from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    event_date: datetime

class EventResponse(EventCreate):
    id: int
    created_by: int
    created_at: datetime
    
    class Config:
        from_attributes = True
