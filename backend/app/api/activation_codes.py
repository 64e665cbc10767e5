"""
Employee / admin activation code endpoints.

Codes are issued and listed from the console; the bot adapter posts to
/consume when someone sends a code to the bot.
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
    ActivationCodeCreate,
    ActivationCodeResponse,
    ConsumeCodeRequest,
    ConsumeCodeResponse,
    PurgeResponse,
)
from app.services import activation_codes

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("/", response_model=ActivationCodeResponse, status_code=201)
async def create_code(
    request: ActivationCodeCreate,
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
):
    """
    Issue a 6-digit code valid for 15 minutes.

    Returns 400 for an empty name, 503 if no free code could be generated.
    """
    try:
        return await activation_codes.issue_code(db, request.name, request.type)
    except ConsoleError as e:
        raise http_error(e)


@router.get("/", response_model=list[ActivationCodeResponse])
async def list_codes(
    include_inactive: bool = Query(False, description="Include used and expired codes"),
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
):
    """Currently valid codes, newest first."""
    return await activation_codes.list_codes(db, include_inactive=include_inactive)


@router.post("/consume", response_model=ConsumeCodeResponse)
async def consume_code(
    request: ConsumeCodeRequest,
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
):
    """
    Consume a code and return the name/role it was issued for.

    Distinct failures: 404 code_not_found, 409 code_expired,
    409 code_already_used.
    """
    try:
        return await activation_codes.consume_code(db, request.code, used_by=request.used_by)
    except ConsoleError as e:
        raise http_error(e)


@router.delete("/expired", response_model=PurgeResponse)
async def purge_expired(
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
):
    """Delete expired codes that were never used."""
    purged = await activation_codes.purge_expired_codes(db)
    return PurgeResponse(purged=purged)
