"""Email subscription and dispatch schemas for API."""
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel


class SubscriptionCreate(BaseModel):
    """Schema for subscribing to a website digest."""
    website_id: int
    frequency: Literal["weekly", "monthly"]


class SubscriptionResponse(BaseModel):
    """Schema for subscription in API responses."""
    id: int
    user_id: int
    website_id: int
    frequency: str
    is_active: bool
    last_sent_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SendResultResponse(BaseModel):
    """Outcome of one digest in a dispatch cycle."""
    subscription_id: int
    website_id: int
    recipient: Optional[str] = None
    success: bool
    event_count: int = 0
    error: Optional[str] = None
