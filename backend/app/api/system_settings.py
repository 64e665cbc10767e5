"""
System settings endpoints.

Writing the `timezone` setting validates the zone name and clears the
timezone cache so the next request re-resolves it.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import require_admin
from app.api.deps import get_timezone_service, get_stats_cache
from app.api.errors import http_error
from app.database import get_db
from app.errors import ConsoleError
from app.models.telegram_user import TelegramUser
from app.schemas.activation_code import AdminActivationCode
from app.schemas.setting import SettingResponse, SettingUpdate, TimezoneResponse
from app.services import activation_codes, settings_store
from app.services.clock import TimezoneService, TIMEZONE_SETTING_KEY, load_zone
from app.services.stats import DashboardStatsCache

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[SettingResponse])
async def list_settings(
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
):
    """All settings except the admin activation code."""
    stored = await settings_store.list_settings(db)
    return [s for s in stored if s.key != activation_codes.ADMIN_ACTIVATION_KEY]


@router.post("/", response_model=SettingResponse)
async def save_setting(
    request: SettingUpdate,
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
    timezone_service: TimezoneService = Depends(get_timezone_service),
    stats_cache: DashboardStatsCache = Depends(get_stats_cache),
):
    try:
        if request.key == activation_codes.ADMIN_ACTIVATION_KEY:
            # Format rules live with the admin code
            await activation_codes.set_admin_activation_code(db, request.value)
            return await settings_store.get_setting(db, request.key)

        if request.key == TIMEZONE_SETTING_KEY:
            load_zone(request.value)

        setting = await settings_store.set_setting(db, request.key, request.value)
    except ConsoleError as e:
        raise http_error(e)

    if setting.key == TIMEZONE_SETTING_KEY:
        timezone_service.invalidate_timezone_cache()
        stats_cache.invalidate()

    logger.info(f"Setting {setting.key} saved by {admin.display_name}")
    return setting


@router.get("/timezone", response_model=TimezoneResponse)
async def get_timezone(
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
    timezone_service: TimezoneService = Depends(get_timezone_service),
):
    """Effective display timezone (setting or default)."""
    return TimezoneResponse(timezone=await timezone_service.resolve_timezone(db))


@router.get("/admin-activation-code", response_model=AdminActivationCode)
async def get_admin_activation_code(
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
):
    return AdminActivationCode(code=await activation_codes.get_admin_activation_code(db))


@router.put("/admin-activation-code", response_model=AdminActivationCode)
async def update_admin_activation_code(
    request: AdminActivationCode,
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
):
    """Replace the standing admin-group code. Returns 400 unless exactly 4 digits."""
    try:
        code = await activation_codes.set_admin_activation_code(db, request.code)
    except ConsoleError as e:
        raise http_error(e)

    logger.info(f"Admin activation code changed by {admin.display_name}")
    return AdminActivationCode(code=code)


@router.get("/{key}", response_model=SettingResponse)
async def get_setting(
    key: str,
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
):
    setting = None
    if key != activation_codes.ADMIN_ACTIVATION_KEY:
        setting = await settings_store.get_setting(db, key)
    if not setting:
        raise HTTPException(status_code=404, detail=f"Setting {key} not found")
    return setting
