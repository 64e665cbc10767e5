"""
Dashboard statistics with a stale-aware cache.

Counts are cached per calendar day of the display timezone and dropped
whenever the StaleNotifier reports an order change.
"""
import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from sqlalchemy import select, func, and_
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.order import Order, OrderStatus
from app.models.telegram_user import TelegramUser, UserRole
from app.services.clock import TimezoneService
from app.services.events import OrderEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DashboardStats:
    today_orders: int
    pending_orders: int
    active_employees: int
    total_orders: int
    day: date
    timezone: str


class DashboardStatsCache:
    def __init__(self, timezone_service: TimezoneService):
        self.timezone_service = timezone_service
        self._cached: Optional[DashboardStats] = None
        # Bumped by every invalidation; a compute that spans one is not stored
        self._generation = 0

    def invalidate(self, event: Optional[OrderEvent] = None) -> None:
        """StaleNotifier listener."""
        if self._cached is not None:
            reason = f"{event.kind} {event.order_number}" if event else "manual"
            logger.debug(f"Dashboard stats invalidated ({reason})")
        self._generation += 1
        self._cached = None

    @property
    def is_cached(self) -> bool:
        return self._cached is not None

    async def get(self, db: AsyncSession) -> DashboardStats:
        generation = self._generation
        tz = await self.timezone_service.resolve_timezone(db)
        today = self.timezone_service.today(tz)

        cached = self._cached
        if cached is not None and cached.day == today and cached.timezone == tz:
            return cached

        stats = await self._compute(db, today, tz)
        if generation == self._generation:
            self._cached = stats
        else:
            logger.debug("Dashboard stats changed during compute, not caching")
        return stats

    async def _compute(self, db: AsyncSession, today: date, tz: str) -> DashboardStats:
        start, end = self.timezone_service.day_bounds(today, tz)

        today_orders = (await db.execute(
            select(func.count(Order.id)).where(
                and_(Order.created_at >= start, Order.created_at <= end)
            )
        )).scalar_one()
        pending_orders = (await db.execute(
            select(func.count(Order.id)).where(Order.status == OrderStatus.PENDING.value)
        )).scalar_one()
        active_employees = (await db.execute(
            select(func.count(TelegramUser.id)).where(
                and_(
                    TelegramUser.is_active.is_(True),
                    TelegramUser.role == UserRole.EMPLOYEE.value,
                )
            )
        )).scalar_one()
        total_orders = (await db.execute(select(func.count(Order.id)))).scalar_one()

        return DashboardStats(
            today_orders=today_orders,
            pending_orders=pending_orders,
            active_employees=active_employees,
            total_orders=total_orders,
            day=today,
            timezone=tz,
        )
