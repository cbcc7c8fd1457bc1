"""Settings API endpoints."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import settings as app_settings
from ..database import get_db
from ..dependencies import get_current_user
from ..models import Setting, User
from ..schemas.settings import SettingsResponse, SettingsUpdate, TestEmailRequest, TestEmailResponse
from ..services.email_sender import email_sender_service, EmailConfig
from ..services.settings_store import get_all_settings
from ..utils.db_utils import retry_on_lock, utcnow

router = APIRouter(prefix="/api/settings", tags=["settings"])


def _bool_from_str(val: str) -> bool:
    """Convert string '0'/'1' to bool."""
    return val == "1" or val.lower() == "true"


def _build_settings_response(settings_dict: dict) -> SettingsResponse:
    """Build a SettingsResponse from a settings dictionary. The SMTP password is never returned."""
    return SettingsResponse(
        alert_red_overshoot_percent=int(settings_dict.get("alert_red_overshoot_percent", 50)),
        digest_subject_prefix=settings_dict.get("digest_subject_prefix") or "VitalWatch",
        digest_email_from=settings_dict.get("digest_email_from") or None,
        smtp_host=settings_dict.get("smtp_host") or None,
        smtp_port=int(settings_dict.get("smtp_port", 587)),
        smtp_username=settings_dict.get("smtp_username") or None,
        smtp_use_tls=_bool_from_str(settings_dict.get("smtp_use_tls", "1")),
    )


@router.get("", response_model=SettingsResponse)
async def get_settings(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get all settings."""
    settings_dict = await get_all_settings(db)
    return _build_settings_response(settings_dict)


@router.put("", response_model=SettingsResponse)
async def update_settings(
    update: SettingsUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update settings."""
    updates = update.model_dump(exclude_unset=True)

    for key, value in updates.items():
        if value is None:
            continue
        # Bools are stored as "0"/"1"
        if isinstance(value, bool):
            store_value = "1" if value else "0"
        else:
            store_value = str(value)

        result = await db.execute(select(Setting).where(Setting.key == key))
        setting = result.scalar_one_or_none()
        if setting:
            setting.value = store_value
        else:
            db.add(Setting(key=key, value=store_value))

    await retry_on_lock(db.commit)

    settings_dict = await get_all_settings(db)
    return _build_settings_response(settings_dict)


@router.post("/test-email", response_model=TestEmailResponse)
async def test_email(
    request: TestEmailRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Send a test email to verify SMTP configuration."""
    settings_dict = await get_all_settings(db)

    if not settings_dict.get("smtp_host"):
        raise HTTPException(status_code=400, detail="SMTP host is not configured")

    config = EmailConfig.from_settings(settings_dict, timeout=app_settings.mail_timeout_seconds)
    prefix = settings_dict.get("digest_subject_prefix") or "VitalWatch"

    subject = f"{prefix} - Test Email"
    body = "\n".join([
        f"{prefix} Test Email",
        "=" * 40,
        "",
        "If you received this message, your SMTP configuration is working correctly.",
        "",
        f"SMTP Host: {config.host}",
        f"SMTP Port: {config.port}",
        f"TLS Enabled: {config.use_tls}",
        f"From: {config.from_address or config.username or 'Not set'}",
        f"To: {request.to_address}",
        "",
        f"Time: {utcnow().strftime('%Y-%m-%d %H:%M:%S UTC')}",
    ])

    success = await email_sender_service.send_email(config, request.to_address, subject, body)
    if not success:
        raise HTTPException(status_code=500, detail="Failed to send test email. Check server logs for details.")
    return TestEmailResponse(success=True, message=f"Test email sent to {request.to_address}")
