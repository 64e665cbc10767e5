"""
Admin group endpoints.
"""
import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import require_admin
from app.api.errors import http_error
from app.database import get_db
from app.errors import ConsoleError
from app.models.telegram_user import TelegramUser
from app.schemas.activation_code import (
    AdminGroupActivate,
    AdminGroupResponse,
    AdminGroupUpdate,
)
from app.services import activation_codes

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/", response_model=list[AdminGroupResponse])
async def list_admin_groups(
    active_only: bool = Query(True),
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
):
    return await activation_codes.list_admin_groups(db, active_only=active_only)


@router.post("/activate", response_model=AdminGroupResponse)
async def activate_admin_group(
    request: AdminGroupActivate,
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
):
    """
    Activate a chat group with the standing 4-digit code.

    Re-activating an existing group refreshes it. Returns 403 with
    code invalid_activation_code on a wrong code.
    """
    try:
        return await activation_codes.activate_admin_group(db, request.group_id, request.code)
    except ConsoleError as e:
        raise http_error(e)


@router.patch("/{group_id}", response_model=AdminGroupResponse)
async def update_admin_group(
    group_id: str,
    request: AdminGroupUpdate,
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
):
    """Enable or disable an admin group."""
    try:
        return await activation_codes.set_admin_group_active(db, group_id, request.is_active)
    except ConsoleError as e:
        raise http_error(e)
