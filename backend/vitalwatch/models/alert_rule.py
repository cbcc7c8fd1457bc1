"""AlertRule model - per-website metric thresholds."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.db_utils import utcnow


class AlertRule(Base):
    """Threshold on one metric of a website."""

    __tablename__ = "performance_alerts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    website_id = Column(Integer, ForeignKey("websites.id"), nullable=False, index=True)
    metric_type = Column(String(50), nullable=False)  # lcp, fid, cls, lighthouseScore
    threshold_value = Column(String(50), nullable=False)  # decimal string
    is_active = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    website = relationship("Website", back_populates="alert_rules")
    events = relationship("AlertEvent", back_populates="rule")
