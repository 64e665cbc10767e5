"""
Console authentication gate.

Session issuance lives outside this service. The console front end sends
an httpOnly `auth_token` cookie holding the id of the operator's
TelegramUser record; review and administration endpoints require that user
to exist, be active, and hold the admin role.
"""
import logging
from uuid import UUID

from fastapi import Depends, HTTPException, Cookie
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models.telegram_user import TelegramUser

logger = logging.getLogger(__name__)


# Authentication Dependencies
async def get_current_user(
    auth_token: str = Cookie(None),
    db: AsyncSession = Depends(get_db)
) -> TelegramUser:
    """
    Dependency to get the current operator from the httpOnly cookie.

    Raises:
        HTTPException 401: cookie missing, malformed, or user not found
        HTTPException 403: user is deactivated
    """
    if not auth_token:
        raise HTTPException(status_code=401, detail="Not authenticated.")

    try:
        user_id = UUID(auth_token)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid token.")

    user = await db.get(TelegramUser, user_id)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid token. User not found.")

    if not user.is_active:
        logger.warning(f"Deactivated user {user.telegram_id} attempted console access")
        raise HTTPException(status_code=403, detail="Account is deactivated.")

    return user


async def require_admin(
    current_user: TelegramUser = Depends(get_current_user)
) -> TelegramUser:
    """
    Dependency to require admin role.

    Raises:
        HTTPException 403: If user is not an admin
    """
    if not current_user.is_admin():
        logger.warning(
            f"User {current_user.telegram_id} (role={current_user.role}) "
            f"attempted to access admin endpoint"
        )
        raise HTTPException(
            status_code=403,
            detail="Admin access required. You do not have permission to access this resource."
        )

    return current_user
