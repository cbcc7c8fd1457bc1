"""Metric sample and analysis schemas for API."""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

from ..services.evaluator import parse_decimal


def _validate_cls(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        parsed = parse_decimal(value)
    except ValueError:
        raise ValueError("cls must be a decimal string") from None
    if parsed < 0:
        raise ValueError("cls must not be negative")
    return value.strip()


class MetricValues(BaseModel):
    """Core Web Vitals readings; every field is optional."""
    lcp: Optional[int] = Field(None, ge=0)  # ms
    fid: Optional[int] = Field(None, ge=0)  # ms
    cls: Optional[str] = Field(None, max_length=50)
    lighthouse_score: Optional[int] = Field(None, ge=0, le=100)
    performance_score: Optional[int] = Field(None, ge=0, le=100)

    @field_validator("cls")
    @classmethod
    def check_cls(cls, value):
        return _validate_cls(value)


class MetricSampleCreate(MetricValues):
    """Schema for recording a sample."""
    website_id: int


class MetricSampleResponse(BaseModel):
    """Schema for a stored sample."""
    id: int
    website_id: int
    lcp: Optional[int] = None
    fid: Optional[int] = None
    cls: Optional[str] = None
    lighthouse_score: Optional[int] = None
    performance_score: Optional[int] = None
    recorded_at: datetime

    class Config:
        from_attributes = True


class AlertChange(BaseModel):
    """An alert event change caused by a sample."""
    rule_id: int
    event_id: int
    action: str  # opened, updated, resolved
    severity: str
    metric_value: str


class IngestionResponse(BaseModel):
    """Stored sample plus resulting alert changes."""
    sample: MetricSampleResponse
    alert_changes: List[AlertChange] = []
    evaluation_error: Optional[str] = None


class AnalysisRequest(BaseModel):
    """Samples to analyze; the latest stored samples are used when omitted."""
    metrics: Optional[List[MetricValues]] = None


class ReportResponse(BaseModel):
    """Schema for a stored performance report."""
    id: int
    website_id: int
    report_type: str
    summary: Optional[str] = None
    metrics: Optional[str] = None
    recommendations: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
