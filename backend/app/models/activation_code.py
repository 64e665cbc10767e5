from datetime import datetime
from sqlalchemy import Column, String, DateTime, Boolean, Index
import uuid
import enum

from app.database import Base
from app.database_types import GUID
from app.services.clock import utcnow


class CodeType(str, enum.Enum):
    """Role an activation code grants when consumed"""
    EMPLOYEE = "employee"
    ADMIN = "admin"


class ActivationCode(Base):
    __tablename__ = "activation_codes"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)

    # Digit string. Unique only among currently valid codes, so no DB constraint;
    # used and expired records are kept for the listing until purged.
    code = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    type = Column(String, nullable=False, default=CodeType.EMPLOYEE.value)

    # Consumption
    is_used = Column(Boolean, nullable=False, default=False)
    used_by = Column(String, nullable=True)  # External chat id of the consumer
    used_at = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_activation_codes_validity", "is_used", "expires_at"),
    )

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def is_valid(self, now: datetime) -> bool:
        """Consumable: never used and not yet expired."""
        return not self.is_used and not self.is_expired(now)
