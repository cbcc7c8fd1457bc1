"""User model - dashboard account owning websites."""
from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.db_utils import utcnow


class User(Base):
    """Account provisioned from the external identity provider."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    open_id = Column(String(64), unique=True, nullable=False, index=True)
    name = Column(String, nullable=True)
    email = Column(String(320), nullable=True)
    created_at = Column(DateTime, default=utcnow)
    last_signed_in = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    websites = relationship("Website", back_populates="user")
    subscriptions = relationship("EmailSubscription", back_populates="user")
