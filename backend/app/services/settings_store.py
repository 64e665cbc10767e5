"""Key/value system settings editable from the console."""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import ValidationError
from app.models.system_setting import SystemSetting
from app.services.clock import utcnow

logger = logging.getLogger(__name__)


async def get_setting(db: AsyncSession, key: str) -> Optional[SystemSetting]:
    result = await db.execute(select(SystemSetting).where(SystemSetting.key == key))
    return result.scalar_one_or_none()


async def list_settings(db: AsyncSession) -> list[SystemSetting]:
    result = await db.execute(select(SystemSetting).order_by(SystemSetting.key.asc()))
    return list(result.scalars().all())


async def set_setting(db: AsyncSession, key: str, value: str) -> SystemSetting:
    """Insert or overwrite a setting and commit."""
    if not key or not key.strip():
        raise ValidationError("Setting key must not be empty")
    if value is None:
        raise ValidationError(f"Setting {key} requires a value")

    key = key.strip()
    setting = await get_setting(db, key)
    if setting:
        setting.value = value
        setting.updated_at = utcnow()
    else:
        setting = SystemSetting(key=key, value=value)
        db.add(setting)

    await db.commit()
    await db.refresh(setting)

    logger.info(f"Setting {key} updated")
    return setting
