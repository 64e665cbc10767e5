"""
Review service: the use-case layer the console calls.

Wraps the order state machine with listing projections, order intake for
the bot adapter, and stale-view notification after every committed write.
Domain errors from the state machine propagate unchanged.
"""
import logging
import secrets
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Union
from uuid import UUID

from sqlalchemy import select, func, or_, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import NotFoundError, ValidationError
from app.models.order import Order, OrderStatus, OrderType, ApprovalMethod
from app.models.telegram_user import TelegramUser
from app.services import state_machine
from app.services.events import OrderEvent, StaleNotifier

logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS = 3


@dataclass
class OrderFilter:
    """Listing filter; page is 1-indexed"""
    status: Optional[OrderStatus] = None
    type: Optional[OrderType] = None
    search: Optional[str] = None
    page: int = 1
    page_size: int = 10


@dataclass
class OrderPage:
    orders: list[Order]
    total: int
    page: int
    page_size: int


def generate_order_number() -> str:
    """Human-readable order number: '#' + epoch millis + 3 random digits."""
    return f"#{int(time.time() * 1000)}{secrets.randbelow(1000):03d}"


class ReviewService:
    """Approve / reject / amend orders and serve the order listings."""

    def __init__(self, notifier: StaleNotifier):
        self.notifier = notifier

    async def _notify(self, kind: str, order: Order) -> None:
        await self.notifier.publish(
            OrderEvent(
                kind=kind,
                order_id=str(order.id),
                order_number=order.order_number,
                status=order.status,
            )
        )

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def approve_order(
        self,
        db: AsyncSession,
        order_id: Any,
        approved_by: Optional[UUID] = None,
        method: ApprovalMethod = ApprovalMethod.WEB_DASHBOARD,
    ) -> Order:
        order = await state_machine.approve(db, order_id, approved_by, method)
        await self._notify(OrderStatus.APPROVED.value, order)
        return order

    async def reject_order(
        self,
        db: AsyncSession,
        order_id: Any,
        reason: Optional[str],
        approved_by: Optional[UUID] = None,
        method: ApprovalMethod = ApprovalMethod.WEB_DASHBOARD,
    ) -> Order:
        order = await state_machine.reject(db, order_id, reason, approved_by, method)
        await self._notify(OrderStatus.REJECTED.value, order)
        return order

    async def modify_and_approve_order(
        self,
        db: AsyncSession,
        order_id: Any,
        content: Optional[str],
        approved_by: Optional[UUID] = None,
        method: ApprovalMethod = ApprovalMethod.WEB_DASHBOARD,
    ) -> Order:
        order = await state_machine.modify_and_approve(db, order_id, content, approved_by, method)
        await self._notify(OrderStatus.APPROVED_MODIFIED.value, order)
        return order

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    async def create_order(
        self,
        db: AsyncSession,
        telegram_user_id: Any,
        order_type: OrderType,
        amount: Union[Decimal, str, int, float],
        content: Optional[str],
        template_data: Optional[Dict[str, Any]] = None,
    ) -> Order:
        """
        Record a newly submitted report in pending state.

        Raises:
            ValidationError: non-positive amount or empty content
            NotFoundError: unknown or inactive submitter
        """
        try:
            amount = Decimal(str(amount))
        except (InvalidOperation, ValueError):
            raise ValidationError(f"Invalid amount: {amount}")
        if not amount.is_finite() or amount <= 0:
            raise ValidationError("Amount must be greater than zero")
        if content is None or not content.strip():
            raise ValidationError("Report content must not be empty")
        try:
            order_type = OrderType(order_type)
        except ValueError:
            raise ValidationError(f"Unknown order type: {order_type}")

        try:
            submitter_id = telegram_user_id if isinstance(telegram_user_id, UUID) else UUID(str(telegram_user_id))
        except ValueError:
            raise NotFoundError(f"Submitter {telegram_user_id} not found")
        submitter = await db.get(TelegramUser, submitter_id)
        if not submitter or not submitter.is_active:
            raise NotFoundError(f"Submitter {telegram_user_id} not found")
        # A rollback below expires the submitter; keep plain values
        submitter_name = submitter.display_name

        for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
            order = Order(
                order_number=generate_order_number(),
                type=order_type.value,
                amount=amount,
                telegram_user_id=submitter_id,
                original_content=content.strip(),
                template_data=template_data,
                status=OrderStatus.PENDING.value,
                is_modified=False,
            )
            db.add(order)
            try:
                await db.commit()
                break
            except IntegrityError:
                await db.rollback()
                if attempt == ORDER_NUMBER_ATTEMPTS:
                    raise
                logger.warning(f"Order number collision, retrying (attempt {attempt})")

        order = await state_machine.load_order(db, order.id, fresh=True)
        logger.info(
            f"Created order {order.order_number} ({order.type}, {order.amount}) "
            f"for {submitter_name}"
        )
        await self._notify("created", order)
        return order

    # ------------------------------------------------------------------
    # Read-only projections
    # ------------------------------------------------------------------

    async def get_order(self, db: AsyncSession, order_id: Any) -> Order:
        return await state_machine.load_order(db, order_id)

    async def list_pending(self, db: AsyncSession, limit: int = 10) -> list[Order]:
        """Pending orders, oldest first (review queue order)."""
        if limit < 1:
            raise ValidationError("limit must be at least 1")
        result = await db.execute(
            select(Order)
            .where(Order.status == OrderStatus.PENDING.value)
            .order_by(Order.created_at.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_recent(self, db: AsyncSession, limit: int = 5) -> list[Order]:
        """Most recently submitted orders in any status."""
        result = await db.execute(
            select(Order).order_by(Order.created_at.desc()).limit(limit)
        )
        return list(result.scalars().all())

    async def list_orders(self, db: AsyncSession, order_filter: OrderFilter) -> OrderPage:
        """
        Filtered, paginated listing, newest first.

        search matches order number and submitter name / username / chat id,
        case-insensitively. A page past the end is empty, not an error.
        """
        if order_filter.page < 1:
            raise ValidationError("page must be at least 1")
        if order_filter.page_size < 1:
            raise ValidationError("page_size must be at least 1")

        filters = []
        if order_filter.status:
            filters.append(Order.status == OrderStatus(order_filter.status).value)
        if order_filter.type:
            filters.append(Order.type == OrderType(order_filter.type).value)

        term = (order_filter.search or "").strip()
        if term:
            full_name = (
                func.coalesce(TelegramUser.first_name, "")
                + " "
                + func.coalesce(TelegramUser.last_name, "")
            )
            filters.append(
                or_(
                    Order.order_number.icontains(term, autoescape=True),
                    full_name.icontains(term, autoescape=True),
                    TelegramUser.username.icontains(term, autoescape=True),
                    TelegramUser.telegram_id.icontains(term, autoescape=True),
                )
            )

        join_submitter = (TelegramUser, Order.telegram_user_id == TelegramUser.id)

        count_query = select(func.count(Order.id)).select_from(Order).join(*join_submitter)
        query = select(Order).join(*join_submitter)
        if filters:
            count_query = count_query.where(and_(*filters))
            query = query.where(and_(*filters))

        total = (await db.execute(count_query)).scalar_one()

        query = (
            query.order_by(Order.created_at.desc(), Order.order_number.desc())
            .offset((order_filter.page - 1) * order_filter.page_size)
            .limit(order_filter.page_size)
        )
        result = await db.execute(query)

        return OrderPage(
            orders=list(result.scalars().all()),
            total=total,
            page=order_filter.page,
            page_size=order_filter.page_size,
        )
