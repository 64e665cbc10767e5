"""Order-related Pydantic schemas."""
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field

from app.models.order import OrderStatus, OrderType


class OrderCreate(BaseModel):
    """Schema for recording a report submitted through the bot."""
    telegram_user_id: UUID
    type: OrderType
    amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    content: str
    template_data: Optional[dict[str, Any]] = None


class OrderResponse(BaseModel):
    """Schema for order response."""
    id: UUID
    order_number: str
    type: OrderType
    amount: Decimal
    telegram_user_id: UUID
    submitter_name: Optional[str] = None
    original_content: str
    modified_content: Optional[str] = None
    is_modified: bool
    modification_time: Optional[datetime] = None
    template_data: Optional[dict[str, Any]] = None
    status: OrderStatus
    rejection_reason: Optional[str] = None
    approved_by: Optional[UUID] = None
    approval_method: Optional[str] = None
    created_at: datetime
    approved_at: Optional[datetime] = None

    # Same instants as YYYY/MM/DD HH:MM:SS in the display timezone
    created_at_display: Optional[str] = None
    approved_at_display: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class OrderListResponse(BaseModel):
    """One page of the order listing."""
    orders: list[OrderResponse]
    total: int
    page: int
    page_size: int


class RejectOrderRequest(BaseModel):
    reason: str


class ModifyOrderRequest(BaseModel):
    content: str


class DashboardStatsResponse(BaseModel):
    today_orders: int
    pending_orders: int
    active_employees: int
    total_orders: int
    timezone: str
