"""Activation code and admin group Pydantic schemas."""
from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict

from app.models.activation_code import CodeType


class ActivationCodeCreate(BaseModel):
    """Schema for issuing a code."""
    name: str
    type: CodeType = CodeType.EMPLOYEE


class ActivationCodeResponse(BaseModel):
    """Schema for activation code response (console only)."""
    id: UUID
    code: str
    name: str
    type: CodeType
    is_used: bool
    used_by: Optional[str] = None
    used_at: Optional[datetime] = None
    created_at: datetime
    expires_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ConsumeCodeRequest(BaseModel):
    code: str
    used_by: Optional[str] = None  # External chat id of the person activating


class ConsumeCodeResponse(BaseModel):
    """What the bot needs to bind a role; the code itself is not echoed."""
    name: str
    type: CodeType

    model_config = ConfigDict(from_attributes=True)


class PurgeResponse(BaseModel):
    purged: int


class AdminActivationCode(BaseModel):
    code: str


class AdminGroupActivate(BaseModel):
    group_id: str
    code: str


class AdminGroupUpdate(BaseModel):
    is_active: bool


class AdminGroupResponse(BaseModel):
    id: UUID
    group_id: str
    is_active: bool
    activated_at: datetime
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
