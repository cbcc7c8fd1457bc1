"""MetricSample model - recorded Core Web Vitals measurements."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.db_utils import utcnow


class MetricSample(Base):
    """One Core Web Vitals sample. Any subset of metrics may be present."""

    __tablename__ = "core_web_vitals"

    id = Column(Integer, primary_key=True, autoincrement=True)
    website_id = Column(Integer, ForeignKey("websites.id"), nullable=False, index=True)
    lcp = Column(Integer, nullable=True)  # Largest Contentful Paint, ms
    fid = Column(Integer, nullable=True)  # First Input Delay, ms
    cls = Column(String(50), nullable=True)  # Cumulative Layout Shift, decimal string
    lighthouse_score = Column(Integer, nullable=True)  # 0-100
    performance_score = Column(Integer, nullable=True)  # 0-100
    recorded_at = Column(DateTime, default=utcnow, index=True)

    # Relationship
    website = relationship("Website", back_populates="samples")
