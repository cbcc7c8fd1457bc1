"""Website model - sites whose Core Web Vitals are tracked."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.db_utils import utcnow


class Website(Base):
    """A registered website. Deactivated, never deleted, once it has samples."""

    __tablename__ = "websites"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    url = Column(String(512), nullable=False)
    name = Column(String(255), nullable=False)
    is_active = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", back_populates="websites")
    samples = relationship("MetricSample", back_populates="website")
    alert_rules = relationship("AlertRule", back_populates="website")
