"""Access to the key-value settings table."""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import Setting
from ..models.settings import DEFAULT_SETTINGS
from .evaluator import SeverityPolicy, DEFAULT_POLICY

logger = logging.getLogger(__name__)


async def get_all_settings(session: AsyncSession) -> dict:
    """Get all settings as a dictionary, stored values over defaults."""
    result = await session.execute(select(Setting))
    settings_list = result.scalars().all()

    settings_dict = dict(DEFAULT_SETTINGS)
    for setting in settings_list:
        settings_dict[setting.key] = setting.value

    return settings_dict


async def get_severity_policy(session: AsyncSession) -> SeverityPolicy:
    """Severity policy from settings, falling back to the default on bad values."""
    settings = await get_all_settings(session)
    raw = settings.get("alert_red_overshoot_percent", "50")
    try:
        return SeverityPolicy.from_percent(raw)
    except ValueError:
        logger.warning(f"Invalid alert_red_overshoot_percent {raw!r}, using default policy")
        return DEFAULT_POLICY
