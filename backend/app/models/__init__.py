"""Database models"""
from app.models.telegram_user import TelegramUser, UserRole
from app.models.order import Order, OrderType, OrderStatus, ApprovalMethod
from app.models.activation_code import ActivationCode, CodeType
from app.models.admin_group import AdminGroup
from app.models.system_setting import SystemSetting

__all__ = [
    "TelegramUser",
    "UserRole",
    "Order",
    "OrderType",
    "OrderStatus",
    "ApprovalMethod",
    "ActivationCode",
    "CodeType",
    "AdminGroup",
    "SystemSetting",
]
