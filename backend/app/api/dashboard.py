"""
Dashboard API endpoints.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import require_admin
from app.api.deps import get_review_service, get_stats_cache, get_timezone_service
from app.api.orders import present_orders
from app.database import get_db
from app.models.telegram_user import TelegramUser
from app.schemas.order import DashboardStatsResponse, OrderResponse
from app.services.clock import TimezoneService
from app.services.review import ReviewService
from app.services.stats import DashboardStatsCache

router = APIRouter()


@router.get("/stats", response_model=DashboardStatsResponse)
async def get_dashboard_stats(
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
    stats_cache: DashboardStatsCache = Depends(get_stats_cache),
):
    """Order counts for today (display timezone), pending, total, and active employees."""
    stats = await stats_cache.get(db)
    return DashboardStatsResponse(
        today_orders=stats.today_orders,
        pending_orders=stats.pending_orders,
        active_employees=stats.active_employees,
        total_orders=stats.total_orders,
        timezone=stats.timezone,
    )


@router.get("/recent-orders", response_model=list[OrderResponse])
async def get_recent_orders(
    limit: int = Query(5, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
    review: ReviewService = Depends(get_review_service),
    timezone_service: TimezoneService = Depends(get_timezone_service),
):
    """Most recently submitted orders."""
    orders = await review.list_recent(db, limit)
    return await present_orders(db, orders, timezone_service)
