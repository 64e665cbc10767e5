from sqlalchemy import Column, String, DateTime, Boolean, Numeric, Text, ForeignKey, Index
from sqlalchemy.orm import relationship
import uuid
import enum

from app.database import Base
from app.database_types import GUID, JSON
from app.services.clock import utcnow


class OrderType(str, enum.Enum):
    """Kind of monetary transaction being reported"""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    REFUND = "refund"


class OrderStatus(str, enum.Enum):
    """Review status. Everything except PENDING is terminal."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    APPROVED_MODIFIED = "approved_modified"


class ApprovalMethod(str, enum.Enum):
    """Surface the review decision was taken from"""
    WEB_DASHBOARD = "web_dashboard"
    BOT_PANEL = "bot_panel"


class Order(Base):
    __tablename__ = "orders"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    order_number = Column(String, unique=True, nullable=False, index=True)

    type = Column(String, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)

    # Submitting employee
    telegram_user_id = Column(GUID, ForeignKey("telegram_users.id"), nullable=False, index=True)

    # Report body as submitted; never rewritten
    original_content = Column(Text, nullable=False)
    # Parsed report fields from the bot (read-only here)
    template_data = Column(JSON, nullable=True)

    # Amendment by an admin
    modified_content = Column(Text, nullable=True)
    is_modified = Column(Boolean, nullable=False, default=False)
    modification_time = Column(DateTime, nullable=True)

    # Review state
    status = Column(String, nullable=False, default=OrderStatus.PENDING.value)
    rejection_reason = Column(Text, nullable=True)
    approved_by = Column(GUID, ForeignKey("telegram_users.id"), nullable=True)
    approval_method = Column(String, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    approved_at = Column(DateTime, nullable=True)  # Set once, when status leaves pending
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    submitter = relationship("TelegramUser", foreign_keys=[telegram_user_id], lazy="joined")
    reviewer = relationship("TelegramUser", foreign_keys=[approved_by], lazy="joined")

    __table_args__ = (
        # Listing filters and the pending queue
        Index("idx_orders_status_created", "status", "created_at"),
        Index("idx_orders_type_created", "type", "created_at"),
    )

    @property
    def submitter_name(self) -> str | None:
        return self.submitter.display_name if self.submitter else None

    @property
    def effective_content(self) -> str:
        """Report body as it stands after review."""
        return self.modified_content if self.is_modified else self.original_content
