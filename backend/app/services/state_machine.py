"""
State machine for order review.
ALL order status changes must go through this module.

pending -> approved | rejected | approved_modified, all terminal.

Each transition is one conditional UPDATE guarded on status = 'pending', so
the database decides the winner when two admins act on the same order at
once; the loser sees InvalidStateTransition.
"""
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import InvalidStateTransition, NotFoundError, ValidationError
from app.models.order import Order, OrderStatus, ApprovalMethod
from app.services.clock import utcnow

# Configure logger
logger = logging.getLogger(__name__)


# Define allowed state transitions (every status must have an entry)
ALLOWED_TRANSITIONS: Dict[OrderStatus, list[OrderStatus]] = {
    OrderStatus.PENDING: [
        OrderStatus.APPROVED,
        OrderStatus.REJECTED,
        OrderStatus.APPROVED_MODIFIED,
    ],
    OrderStatus.APPROVED: [],  # Terminal
    OrderStatus.REJECTED: [],  # Terminal
    OrderStatus.APPROVED_MODIFIED: [],  # Terminal
}

TERMINAL_STATUSES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


def can_transition(from_status: OrderStatus, to_status: OrderStatus) -> bool:
    """Check if a transition is allowed without touching the database"""
    return to_status in ALLOWED_TRANSITIONS[from_status]


def _require_text(value: Optional[str], field: str) -> str:
    """Strip and require non-empty text; raised before any mutation."""
    if value is None or not value.strip():
        raise ValidationError(f"{field} must not be empty")
    return value.strip()


def _coerce_id(order_id: Any) -> UUID:
    if isinstance(order_id, UUID):
        return order_id
    try:
        return UUID(str(order_id))
    except ValueError:
        raise NotFoundError(f"Order {order_id} not found")


async def load_order(db: AsyncSession, order_id: Any, fresh: bool = False) -> Order:
    """
    Fetch an order by id or raise NotFoundError.

    fresh=True overwrites whatever the session already holds for the row.
    """
    query = select(Order).where(Order.id == _coerce_id(order_id))
    if fresh:
        query = query.execution_options(populate_existing=True)
    result = await db.execute(query)
    order = result.scalar_one_or_none()

    if not order:
        raise NotFoundError(f"Order {order_id} not found")
    return order


async def _transition_order(
    db: AsyncSession,
    order_id: Any,
    to_status: OrderStatus,
    values: Dict[str, Any],
    approved_by: Optional[UUID],
    method: ApprovalMethod,
) -> Order:
    """
    Apply a transition out of pending as a single compare-and-swap write.

    Raises:
        NotFoundError: order does not exist
        InvalidStateTransition: order is not pending, either as loaded or
            because a concurrent writer got there first
    """
    order = await load_order(db, order_id)
    current_status = OrderStatus(order.status)
    order_pk = order.id

    # Fast rejection from the loaded row; the UPDATE guard below is authoritative
    if not can_transition(current_status, to_status):
        raise InvalidStateTransition(
            f"Order {order.order_number} is {current_status.value}, "
            f"cannot transition to {to_status.value}"
        )

    now = utcnow()
    row_values = {
        **values,
        "status": to_status.value,
        "approved_at": now,
        "approved_by": approved_by,
        "approval_method": method.value,
        "updated_at": now,
    }
    if to_status == OrderStatus.APPROVED_MODIFIED:
        row_values["modification_time"] = now

    result = await db.execute(
        update(Order)
        .where(
            Order.id == order_pk,
            Order.status == OrderStatus.PENDING.value,
        )
        .values(**row_values)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount != 1:
        await db.rollback()
        latest = await load_order(db, order_pk, fresh=True)
        logger.warning(
            f"Lost review race on order {latest.order_number}: already {latest.status}",
            extra={"order_id": str(order_pk), "to_status": to_status.value},
        )
        raise InvalidStateTransition(
            f"Order {latest.order_number} is {latest.status}, "
            f"cannot transition to {to_status.value}"
        )

    await db.commit()
    order = await load_order(db, order_pk, fresh=True)

    logger.info(
        f"Order state transition: {current_status.value} → {to_status.value}",
        extra={
            "order_id": str(order.id),
            "order_number": order.order_number,
            "from_status": current_status.value,
            "to_status": to_status.value,
            "approved_by": str(approved_by) if approved_by else None,
            "approval_method": method.value,
        },
    )
    return order


async def approve(
    db: AsyncSession,
    order_id: Any,
    approved_by: Optional[UUID] = None,
    method: ApprovalMethod = ApprovalMethod.WEB_DASHBOARD,
) -> Order:
    """pending → approved"""
    return await _transition_order(
        db, order_id, OrderStatus.APPROVED, {}, approved_by, method
    )


async def reject(
    db: AsyncSession,
    order_id: Any,
    reason: Optional[str],
    approved_by: Optional[UUID] = None,
    method: ApprovalMethod = ApprovalMethod.WEB_DASHBOARD,
) -> Order:
    """pending → rejected, recording the (trimmed) reason"""
    reason = _require_text(reason, "Rejection reason")
    return await _transition_order(
        db,
        order_id,
        OrderStatus.REJECTED,
        {"rejection_reason": reason},
        approved_by,
        method,
    )


async def modify_and_approve(
    db: AsyncSession,
    order_id: Any,
    new_content: Optional[str],
    approved_by: Optional[UUID] = None,
    method: ApprovalMethod = ApprovalMethod.WEB_DASHBOARD,
) -> Order:
    """
    pending → approved_modified.

    The amendment goes to modified_content; original_content is left as
    submitted so the console can show both.
    """
    new_content = _require_text(new_content, "Modified content")
    return await _transition_order(
        db,
        order_id,
        OrderStatus.APPROVED_MODIFIED,
        {"modified_content": new_content, "is_modified": True},
        approved_by,
        method,
    )
