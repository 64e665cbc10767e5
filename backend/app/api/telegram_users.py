"""
Telegram user endpoints (employees and admins known to the bot).
"""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import require_admin
from app.api.deps import get_stats_cache
from app.database import get_db
from app.models.telegram_user import TelegramUser, UserRole
from app.schemas.telegram_user import (
    TelegramUserCreate,
    TelegramUserResponse,
    TelegramUserUpdate,
)
from app.services.stats import DashboardStatsCache

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[TelegramUserResponse])
async def list_telegram_users(
    role: Optional[UserRole] = Query(None, description="Filter by role"),
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
):
    query = select(TelegramUser)
    if role:
        query = query.where(TelegramUser.role == role.value)
    result = await db.execute(query.order_by(TelegramUser.created_at.desc()))
    return result.scalars().all()


@router.post("/", response_model=TelegramUserResponse, status_code=201)
async def create_telegram_user(
    request: TelegramUserCreate,
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
    stats_cache: DashboardStatsCache = Depends(get_stats_cache),
):
    """Returns 409 if the chat id is already registered."""
    if not request.telegram_id.strip():
        raise HTTPException(status_code=400, detail="telegram_id must not be empty")

    user = TelegramUser(
        telegram_id=request.telegram_id.strip(),
        username=request.username,
        first_name=request.first_name,
        last_name=request.last_name,
        role=request.role.value,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=409,
            detail=f"Telegram user {request.telegram_id} already exists"
        )
    await db.refresh(user)
    stats_cache.invalidate()

    logger.info(f"Registered telegram user {user.telegram_id} as {user.role}")
    return user


@router.patch("/{user_id}", response_model=TelegramUserResponse)
async def update_telegram_user(
    user_id: UUID,
    request: TelegramUserUpdate,
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
    stats_cache: DashboardStatsCache = Depends(get_stats_cache),
):
    user = await db.get(TelegramUser, user_id)
    if not user:
        raise HTTPException(status_code=404, detail=f"Telegram user {user_id} not found")

    changes = request.model_dump(exclude_unset=True)
    # role and is_active cannot be cleared, only changed
    for field in ("role", "is_active"):
        if changes.get(field, "") is None:
            changes.pop(field)
    if "role" in changes:
        changes["role"] = UserRole(changes["role"]).value
    for field, value in changes.items():
        setattr(user, field, value)

    await db.commit()
    await db.refresh(user)
    stats_cache.invalidate()

    logger.info(f"Updated telegram user {user.telegram_id}: {sorted(changes)}")
    return user
