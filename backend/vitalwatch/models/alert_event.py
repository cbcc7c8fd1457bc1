"""AlertEvent model - open and resolved threshold breaches."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.db_utils import utcnow


class AlertEvent(Base):
    """A breach of an alert rule, open until a compliant sample resolves it."""

    __tablename__ = "alert_events"
    __table_args__ = (
        # At most one unresolved event per rule
        Index(
            "uq_alert_events_open_per_rule",
            "alert_id",
            unique=True,
            sqlite_where=text("is_resolved = 0"),
            postgresql_where=text("is_resolved = 0"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    alert_id = Column(Integer, ForeignKey("performance_alerts.id"), nullable=False)
    website_id = Column(Integer, ForeignKey("websites.id"), nullable=False, index=True)
    metric_value = Column(String(100), nullable=False)  # snapshot at trigger time
    severity = Column(String(20), nullable=False)  # red, yellow, green
    is_resolved = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    resolved_at = Column(DateTime, nullable=True)

    # Relationship
    rule = relationship("AlertRule", back_populates="events")
