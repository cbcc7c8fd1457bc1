"""Services for alert evaluation, digests, and analysis."""
from .recorder import AlertEventRecorder
from .ingestion import MetricIngestionService
from .dispatcher import NotificationDispatcher, SmtpMailTransport
from .scheduler import SchedulerService
from .llm_client import LLMClient

__all__ = [
    "AlertEventRecorder",
    "MetricIngestionService",
    "NotificationDispatcher",
    "SmtpMailTransport",
    "SchedulerService",
    "LLMClient",
]
