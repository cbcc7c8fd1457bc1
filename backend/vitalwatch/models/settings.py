"""Settings model - key-value store for runtime configuration."""
from sqlalchemy import Column, String, DateTime

from ..database import Base
from ..utils.db_utils import utcnow


class Setting(Base):
    """Global settings stored as key-value pairs."""

    __tablename__ = "settings"

    key = Column(String, primary_key=True)
    value = Column(String, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


# Default settings
DEFAULT_SETTINGS = {
    # Severity policy: breach overshoot (percent of threshold) that turns an event red
    "alert_red_overshoot_percent": "50",

    # Digest settings
    "digest_subject_prefix": "VitalWatch",

    # SMTP transport for digests
    "smtp_host": "",
    "smtp_port": "587",
    "smtp_username": "",
    "smtp_password": "",
    "smtp_use_tls": "1",  # 0 or 1
    "digest_email_from": "",
}
