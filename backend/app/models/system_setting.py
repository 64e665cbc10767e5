from sqlalchemy import Column, String, DateTime, Text
import uuid

from app.database import Base
from app.database_types import GUID
from app.services.clock import utcnow


class SystemSetting(Base):
    __tablename__ = "system_settings"

    id = Column(GUID, primary_key=True, default=uuid.uuid4)
    key = Column(String, unique=True, nullable=False, index=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
