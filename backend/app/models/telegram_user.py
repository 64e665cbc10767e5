from sqlalchemy import Column, String, DateTime, Boolean
import uuid
import enum

from app.database import Base
from app.database_types import GUID
from app.services.clock import utcnow


class UserRole(str, enum.Enum):
    """Role bound to an external chat identity."""
    EMPLOYEE = "employee"  # Submits reports through the bot
    ADMIN = "admin"  # Reviews reports, operates the console


class TelegramUser(Base):
    __tablename__ = "telegram_users"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    telegram_id = Column(String, unique=True, nullable=False, index=True)

    username = Column(String, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)

    # employee | admin
    role = Column(String, nullable=False, default=UserRole.EMPLOYEE.value, index=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    @property
    def display_name(self) -> str:
        """Full name if known, otherwise @username, otherwise the chat id."""
        full_name = " ".join(part for part in (self.first_name, self.last_name) if part)
        if full_name:
            return full_name
        if self.username:
            return f"@{self.username}"
        return self.telegram_id

    def is_admin(self) -> bool:
        """Check if user has admin role."""
        return self.role == UserRole.ADMIN.value
