from sqlalchemy import Column, String, DateTime, Boolean
import uuid

from app.database import Base
from app.database_types import GUID
from app.services.clock import utcnow


class AdminGroup(Base):
    __tablename__ = "admin_groups"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    group_id = Column(String, unique=True, nullable=False, index=True)  # External chat group id

    is_active = Column(Boolean, nullable=False, default=True)

    # Timestamps
    activated_at = Column(DateTime, default=utcnow, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
