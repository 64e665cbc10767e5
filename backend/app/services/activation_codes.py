"""
Activation codes for onboarding employees and admin group chats.

Two kinds of secret live here:
- per-person codes (6 digits, 15 minute TTL, single use) handed to a new
  employee or admin, consumed by the bot when they message it;
- one standing 4-digit admin-group code, kept as a system setting, which a
  group chat supplies to become an admin group.

Consumption is a conditional UPDATE on is_used/expires_at, so concurrent
attempts on the same code cannot both succeed.
"""
import logging
import re
import secrets
from datetime import timedelta
from typing import Optional, Union

from sqlalchemy import select, update, delete, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.errors import (
    CodeAlreadyUsed,
    CodeExpired,
    CodeGenerationError,
    CodeNotFound,
    InvalidActivationCode,
    InvalidCodeFormat,
    NotFoundError,
    ValidationError,
)
from app.models.activation_code import ActivationCode, CodeType
from app.models.admin_group import AdminGroup
from app.services.clock import utcnow
from app.services.settings_store import get_setting, set_setting

logger = logging.getLogger(__name__)

ADMIN_ACTIVATION_KEY = "admin_activation_code"
ADMIN_CODE_PATTERN = re.compile(r"[0-9]{4}")


def _generate_digits(length: int) -> str:
    """Uniformly random, zero-padded digit string."""
    return f"{secrets.randbelow(10 ** length):0{length}d}"


async def _is_code_live(db: AsyncSession, code: str) -> bool:
    """True if an unused, unexpired record already holds this digit string."""
    now = utcnow()
    result = await db.execute(
        select(ActivationCode.id)
        .where(
            and_(
                ActivationCode.code == code,
                ActivationCode.is_used.is_(False),
                ActivationCode.expires_at > now,
            )
        )
        .limit(1)
    )
    return result.first() is not None


async def _latest_record(db: AsyncSession, code: str) -> Optional[ActivationCode]:
    # At most one record per digit string is valid at a time, and it is the newest
    result = await db.execute(
        select(ActivationCode)
        .where(ActivationCode.code == code)
        .order_by(ActivationCode.created_at.desc())
        .limit(1)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


# ============================================================
# Per-person codes
# ============================================================

async def issue_code(
    db: AsyncSession,
    name: str,
    code_type: Union[CodeType, str] = CodeType.EMPLOYEE,
) -> ActivationCode:
    """
    Issue a fresh single-use code for `name`.

    Regenerates on collision with any currently valid code.

    The free-code check and the insert are separate statements, so two
    overlapping calls can in rare cases draw the same free digit string
    (one in a million per overlapping pair). consume_code then acts on the
    newer record only. Issuance is manual from the console, so this is
    accepted instead of serializing issuers.

    Raises:
        ValidationError: empty name or unknown code type
        CodeGenerationError: no free code within the retry budget
    """
    if name is None or not name.strip():
        raise ValidationError("Name must not be empty")
    try:
        code_type = CodeType(code_type)
    except ValueError:
        raise ValidationError(f"Unknown code type: {code_type}")

    candidate = None
    for attempt in range(1, settings.activation_code_max_attempts + 1):
        digits = _generate_digits(settings.activation_code_length)
        if not await _is_code_live(db, digits):
            candidate = digits
            break
        logger.info(f"Activation code collision, regenerating (attempt {attempt})")

    if candidate is None:
        raise CodeGenerationError(
            f"Could not generate a free activation code after "
            f"{settings.activation_code_max_attempts} attempts"
        )

    now = utcnow()
    record = ActivationCode(
        code=candidate,
        name=name.strip(),
        type=code_type.value,
        is_used=False,
        created_at=now,
        expires_at=now + timedelta(minutes=settings.activation_code_ttl_minutes),
    )
    db.add(record)
    await db.commit()
    await db.refresh(record)

    # The code itself is a secret; log only the record id
    logger.info(
        f"Issued {record.type} activation code {record.id} for {record.name}, "
        f"expires at {record.expires_at.isoformat()}",
        extra={"code_id": str(record.id), "code_type": record.type},
    )
    return record


async def consume_code(
    db: AsyncSession,
    code: str,
    used_by: Optional[str] = None,
) -> ActivationCode:
    """
    Mark a code as used and return it so the caller can bind the role.

    Raises:
        CodeNotFound: no record with this digit string
        CodeAlreadyUsed: the code was consumed before (checked first)
        CodeExpired: the code's TTL has run out
    """
    code = (code or "").strip()
    record = await _latest_record(db, code) if code else None
    if not record:
        logger.warning("Activation attempt with unknown code")
        raise CodeNotFound("Activation code not found")

    now = utcnow()
    if record.is_used:
        raise CodeAlreadyUsed("Activation code has already been used")
    if record.is_expired(now):
        raise CodeExpired(f"Activation code expired at {record.expires_at.isoformat()}")

    record_id = record.id
    result = await db.execute(
        update(ActivationCode)
        .where(
            and_(
                ActivationCode.id == record_id,
                ActivationCode.is_used.is_(False),
                ActivationCode.expires_at > now,
            )
        )
        .values(is_used=True, used_by=used_by, used_at=now)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        # Someone else consumed it, or it expired between read and write
        await db.rollback()
        latest = await db.get(ActivationCode, record_id, populate_existing=True)
        if latest is not None and latest.is_used:
            raise CodeAlreadyUsed("Activation code has already been used")
        raise CodeExpired("Activation code has expired")

    await db.commit()
    record = await db.get(ActivationCode, record_id, populate_existing=True)

    logger.info(
        f"Activation code {record.id} ({record.type}) consumed for {record.name}",
        extra={"code_id": str(record.id), "used_by": used_by},
    )
    return record


async def list_codes(db: AsyncSession, include_inactive: bool = False) -> list[ActivationCode]:
    """Valid codes newest first; with include_inactive, every retained record."""
    query = select(ActivationCode)
    if not include_inactive:
        query = query.where(
            and_(
                ActivationCode.is_used.is_(False),
                ActivationCode.expires_at > utcnow(),
            )
        )
    result = await db.execute(query.order_by(ActivationCode.created_at.desc()))
    return list(result.scalars().all())


async def purge_expired_codes(db: AsyncSession) -> int:
    """Delete expired codes that were never used. Used codes stay for audit."""
    result = await db.execute(
        delete(ActivationCode).where(
            and_(
                ActivationCode.is_used.is_(False),
                ActivationCode.expires_at <= utcnow(),
            )
        )
    )
    await db.commit()

    purged = result.rowcount or 0
    logger.info(f"Purged {purged} expired activation code(s)")
    return purged


# ============================================================
# Admin groups
# ============================================================

async def get_admin_activation_code(db: AsyncSession) -> str:
    """The standing admin-group code, or the configured default if never set."""
    setting = await get_setting(db, ADMIN_ACTIVATION_KEY)
    return setting.value if setting else settings.default_admin_activation_code


async def set_admin_activation_code(db: AsyncSession, code: str) -> str:
    """
    Replace the standing admin-group code.

    Raises:
        InvalidCodeFormat: code is not exactly four ASCII digits
    """
    if not isinstance(code, str) or not ADMIN_CODE_PATTERN.fullmatch(code):
        raise InvalidCodeFormat("Admin activation code must be exactly 4 digits")

    await set_setting(db, ADMIN_ACTIVATION_KEY, code)
    logger.info("Admin group activation code changed")
    return code


async def activate_admin_group(
    db: AsyncSession,
    group_id: str,
    supplied_code: str,
) -> AdminGroup:
    """
    Authorize a chat group as an admin group.

    Idempotent: an existing group is reactivated and its activated_at
    refreshed.

    Raises:
        ValidationError: empty group id
        InvalidActivationCode: supplied code does not match; nothing is written
    """
    group_id = (group_id or "").strip()
    if not group_id:
        raise ValidationError("Group id must not be empty")

    expected = await get_admin_activation_code(db)
    # Bytes, so codes typed with non-ASCII digits are a mismatch and not a TypeError
    supplied = str(supplied_code or "").encode("utf-8")
    if not secrets.compare_digest(supplied, expected.encode("utf-8")):
        logger.warning(f"Rejected admin activation for group {group_id}: wrong code")
        raise InvalidActivationCode("Invalid admin activation code")

    now = utcnow()
    group = await _get_group(db, group_id)
    if group is None:
        group = AdminGroup(group_id=group_id, is_active=True, activated_at=now, created_at=now)
        db.add(group)
        try:
            await db.commit()
        except IntegrityError:
            # Concurrent activation inserted it first
            await db.rollback()
            group = await _get_group(db, group_id)
            group.is_active = True
            group.activated_at = now
            await db.commit()
    else:
        group.is_active = True
        group.activated_at = now
        await db.commit()

    await db.refresh(group)
    logger.info(f"Admin group {group_id} activated")
    return group


async def _get_group(db: AsyncSession, group_id: str) -> Optional[AdminGroup]:
    result = await db.execute(select(AdminGroup).where(AdminGroup.group_id == group_id))
    return result.scalar_one_or_none()


async def list_admin_groups(db: AsyncSession, active_only: bool = True) -> list[AdminGroup]:
    query = select(AdminGroup)
    if active_only:
        query = query.where(AdminGroup.is_active.is_(True))
    result = await db.execute(query.order_by(AdminGroup.activated_at.desc()))
    return list(result.scalars().all())


async def set_admin_group_active(db: AsyncSession, group_id: str, is_active: bool) -> AdminGroup:
    """Enable or disable an admin group without touching its activation time."""
    group = await _get_group(db, group_id)
    if group is None:
        raise NotFoundError(f"Admin group {group_id} not found")

    group.is_active = is_active
    await db.commit()
    await db.refresh(group)

    logger.info(f"Admin group {group_id} {'enabled' if is_active else 'disabled'}")
    return group
