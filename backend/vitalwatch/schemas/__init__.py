"""Pydantic schemas for API request/response models."""
from .website import (
    UserUpsert,
    UserResponse,
    WebsiteCreate,
    WebsiteResponse,
)
from .metric import (
    MetricValues,
    MetricSampleCreate,
    MetricSampleResponse,
    IngestionResponse,
    AnalysisRequest,
    ReportResponse,
)
from .alert import (
    AlertRuleCreate,
    AlertRuleResponse,
    AlertEventResponse,
)
from .subscription import (
    SubscriptionCreate,
    SubscriptionResponse,
    SendResultResponse,
)
from .settings import (
    SettingsResponse,
    SettingsUpdate,
)

__all__ = [
    "UserUpsert",
    "UserResponse",
    "WebsiteCreate",
    "WebsiteResponse",
    "MetricValues",
    "MetricSampleCreate",
    "MetricSampleResponse",
    "IngestionResponse",
    "AnalysisRequest",
    "ReportResponse",
    "AlertRuleCreate",
    "AlertRuleResponse",
    "AlertEventResponse",
    "SubscriptionCreate",
    "SubscriptionResponse",
    "SendResultResponse",
    "SettingsResponse",
    "SettingsUpdate",
]
