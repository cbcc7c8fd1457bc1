"""Database models."""
from .settings import Setting
from .user import User
from .website import Website
from .metric_sample import MetricSample
from .alert_rule import AlertRule
from .alert_event import AlertEvent
from .email_subscription import EmailSubscription
from .performance_report import PerformanceReport

__all__ = [
    "Setting",
    "User",
    "Website",
    "MetricSample",
    "AlertRule",
    "AlertEvent",
    "EmailSubscription",
    "PerformanceReport",
]
