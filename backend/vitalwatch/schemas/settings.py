"""Settings schemas for API."""
from typing import Optional
from pydantic import BaseModel, Field


class SettingsResponse(BaseModel):
    """Schema for settings response."""
    # Alert policy
    alert_red_overshoot_percent: int = 50

    # Digest settings
    digest_subject_prefix: str = "VitalWatch"
    digest_email_from: Optional[str] = None

    # SMTP settings
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_use_tls: bool = True


class SettingsUpdate(BaseModel):
    """Schema for updating settings."""
    alert_red_overshoot_percent: Optional[int] = Field(None, ge=1, le=1000)

    digest_subject_prefix: Optional[str] = Field(None, min_length=1, max_length=50)
    digest_email_from: Optional[str] = None

    smtp_host: Optional[str] = None
    smtp_port: Optional[int] = Field(None, ge=1, le=65535)
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: Optional[bool] = None


class TestEmailRequest(BaseModel):
    """Request to send a test email."""
    to_address: str = Field(..., min_length=3)


class TestEmailResponse(BaseModel):
    """Result of a test email."""
    success: bool
    message: str
