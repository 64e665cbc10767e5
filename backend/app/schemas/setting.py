"""System setting Pydantic schemas."""
from datetime import datetime
from pydantic import BaseModel, ConfigDict


class SettingUpdate(BaseModel):
    key: str
    value: str


class SettingResponse(BaseModel):
    key: str
    value: str
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TimezoneResponse(BaseModel):
    timezone: str
