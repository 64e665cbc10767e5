"""
Orders API endpoints.
Listing, detail, intake and the three review actions.
"""
import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.auth import require_admin
from app.api.deps import get_review_service, get_timezone_service
from app.api.errors import http_error
from app.config import settings
from app.database import get_db
from app.errors import ConsoleError
from app.models.order import Order, OrderStatus, OrderType
from app.models.telegram_user import TelegramUser
from app.schemas.order import (
    OrderCreate,
    OrderResponse,
    OrderListResponse,
    RejectOrderRequest,
    ModifyOrderRequest,
)
from app.services.clock import TimezoneService
from app.services.review import ReviewService, OrderFilter

logger = logging.getLogger(__name__)
router = APIRouter()


async def present_orders(
    db: AsyncSession,
    orders: list[Order],
    timezone_service: TimezoneService,
) -> list[OrderResponse]:
    """Serialize orders, adding their timestamps rendered in the display timezone."""
    tz = await timezone_service.resolve_timezone(db)
    return [
        OrderResponse.model_validate(order).model_copy(update={
            "created_at_display": timezone_service.format_timestamp(order.created_at, timezone=tz),
            "approved_at_display": (
                timezone_service.format_timestamp(order.approved_at, timezone=tz)
                if order.approved_at else None
            ),
        })
        for order in orders
    ]


# Endpoints
@router.get("/", response_model=OrderListResponse)
async def list_orders(
    status: Optional[OrderStatus] = Query(None, description="Filter by review status"),
    type: Optional[OrderType] = Query(None, description="Filter by order type"),
    search: Optional[str] = Query(None, description="Order number or submitter name"),
    page: int = Query(1, ge=1, description="1-indexed page number"),
    page_size: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
    review: ReviewService = Depends(get_review_service),
    timezone_service: TimezoneService = Depends(get_timezone_service),
):
    """
    List orders newest first.

    A page past the last one returns an empty list with the real total.
    """
    try:
        result = await review.list_orders(
            db,
            OrderFilter(status=status, type=type, search=search, page=page, page_size=page_size),
        )
    except ConsoleError as e:
        raise http_error(e)

    return OrderListResponse(
        orders=await present_orders(db, result.orders, timezone_service),
        total=result.total,
        page=result.page,
        page_size=result.page_size,
    )


@router.get("/pending", response_model=list[OrderResponse])
async def list_pending_orders(
    limit: int = Query(10, ge=1, le=100, description="Max orders to return"),
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
    review: ReviewService = Depends(get_review_service),
    timezone_service: TimezoneService = Depends(get_timezone_service),
):
    """Pending orders in review-queue order (oldest first)."""
    orders = await review.list_pending(db, limit)
    return await present_orders(db, orders, timezone_service)


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
    review: ReviewService = Depends(get_review_service),
    timezone_service: TimezoneService = Depends(get_timezone_service),
):
    """Get a specific order by ID."""
    try:
        order = await review.get_order(db, order_id)
    except ConsoleError as e:
        raise http_error(e)
    return (await present_orders(db, [order], timezone_service))[0]


@router.post("/", response_model=OrderResponse, status_code=201)
async def create_order(
    request: OrderCreate,
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
    review: ReviewService = Depends(get_review_service),
    timezone_service: TimezoneService = Depends(get_timezone_service),
):
    """
    Record a report submitted through the bot. The order starts pending.
    """
    try:
        order = await review.create_order(
            db,
            telegram_user_id=request.telegram_user_id,
            order_type=request.type,
            amount=request.amount,
            content=request.content,
            template_data=request.template_data,
        )
    except ConsoleError as e:
        raise http_error(e)
    return (await present_orders(db, [order], timezone_service))[0]


@router.post("/{order_id}/approve", response_model=OrderResponse)
async def approve_order(
    order_id: UUID,
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
    review: ReviewService = Depends(get_review_service),
    timezone_service: TimezoneService = Depends(get_timezone_service),
):
    """
    Approve a pending order.

    Returns 409 if the order has already been reviewed.
    """
    try:
        order = await review.approve_order(db, order_id, approved_by=admin.id)
    except ConsoleError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error approving order {order_id}: {str(e)}", exc_info=True)
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to approve order")

    logger.info(f"Order {order.order_number} approved by {admin.display_name}")
    return (await present_orders(db, [order], timezone_service))[0]


@router.post("/{order_id}/reject", response_model=OrderResponse)
async def reject_order(
    order_id: UUID,
    action: RejectOrderRequest,
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
    review: ReviewService = Depends(get_review_service),
    timezone_service: TimezoneService = Depends(get_timezone_service),
):
    """
    Reject a pending order with a reason.

    Returns 400 for an empty reason, 409 if already reviewed.
    """
    try:
        order = await review.reject_order(db, order_id, action.reason, approved_by=admin.id)
    except ConsoleError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error rejecting order {order_id}: {str(e)}", exc_info=True)
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to reject order")

    logger.info(f"Order {order.order_number} rejected by {admin.display_name}")
    return (await present_orders(db, [order], timezone_service))[0]


@router.post("/{order_id}/modify", response_model=OrderResponse)
async def modify_and_approve_order(
    order_id: UUID,
    action: ModifyOrderRequest,
    db: AsyncSession = Depends(get_db),
    admin: TelegramUser = Depends(require_admin),
    review: ReviewService = Depends(get_review_service),
    timezone_service: TimezoneService = Depends(get_timezone_service),
):
    """
    Amend the report text and approve in one step.

    The submitted text stays in original_content; the amendment is stored
    alongside it. Returns 400 for empty content, 409 if already reviewed.
    """
    try:
        order = await review.modify_and_approve_order(
            db, order_id, action.content, approved_by=admin.id
        )
    except ConsoleError as e:
        raise http_error(e)
    except Exception as e:
        logger.error(f"Error modifying order {order_id}: {str(e)}", exc_info=True)
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to modify order")

    logger.info(f"Order {order.order_number} modified and approved by {admin.display_name}")
    return (await present_orders(db, [order], timezone_service))[0]
