"""CRUD 操作模块"""
from . import ambassador, notification, payout, referral, subscription
from .user import create as create_user
from .user import get_by_email as get_user_by_email
from .user import get_or_create_by_email as get_or_create_user_by_email

__all__ = [
    "ambassador",
    "notification",
    "payout",
    "referral",
    "subscription",
    "create_user",
    "get_user_by_email",
    "get_or_create_user_by_email",
]
