"""Alert rule and alert event schemas for API."""
from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, Field, field_validator

from ..services.evaluator import parse_decimal


class AlertRuleCreate(BaseModel):
    """Schema for creating an alert rule."""
    metric_type: Literal["lcp", "fid", "cls", "lighthouseScore"]
    threshold_value: str = Field(..., min_length=1, max_length=50)

    @field_validator("threshold_value")
    @classmethod
    def check_threshold(cls, value):
        try:
            parsed = parse_decimal(value)
        except ValueError:
            raise ValueError("threshold_value must be a numeric string") from None
        if parsed < 0:
            raise ValueError("threshold_value must not be negative")
        return value.strip()


class AlertRuleResponse(BaseModel):
    """Schema for alert rule in API responses."""
    id: int
    website_id: int
    metric_type: str
    threshold_value: str
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class AlertEventResponse(BaseModel):
    """Schema for alert event in API responses."""
    id: int
    alert_id: int
    website_id: int
    metric_value: str
    severity: str
    is_resolved: bool
    created_at: datetime
    resolved_at: Optional[datetime] = None

    class Config:
        from_attributes = True
