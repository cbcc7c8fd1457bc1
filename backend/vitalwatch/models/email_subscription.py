"""EmailSubscription model - scheduled digest subscriptions."""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.db_utils import utcnow


class EmailSubscription(Base):
    """Weekly or monthly digest of a website's alert events for one user."""

    __tablename__ = "email_subscriptions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    website_id = Column(Integer, ForeignKey("websites.id"), nullable=False, index=True)
    frequency = Column(String(50), nullable=False)  # weekly, monthly
    is_active = Column(Integer, default=1, nullable=False)
    last_sent_at = Column(DateTime, nullable=True)  # advanced only after a confirmed send
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", back_populates="subscriptions")
    website = relationship("Website")
