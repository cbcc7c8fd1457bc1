"""PerformanceReport model - stored analysis text."""
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey

from ..database import Base
from ..utils.db_utils import utcnow


class PerformanceReport(Base):
    """Append-only report; the newest per (website, type) is current."""

    __tablename__ = "performance_reports"

    id = Column(Integer, primary_key=True, autoincrement=True)
    website_id = Column(Integer, ForeignKey("websites.id"), nullable=False, index=True)
    report_type = Column(String(50), nullable=False)  # analysis, weekly, monthly
    summary = Column(Text, nullable=True)
    metrics = Column(Text, nullable=True)  # JSON with aggregated metrics
    recommendations = Column(Text, nullable=True)  # LLM output, stored verbatim
    created_at = Column(DateTime, default=utcnow, index=True)
