"""
数据库模型定义模块

本模块使用 SQLModel 定义所有数据库表结构。

模型按功能拆分：
- user.py: 用户模型
- subscription.py: 订阅和商家模型
- ambassador.py: 大使、推荐点击、推荐成交、佣金、打款模型
- notification.py: 大使通知模型
- payment_event.py: 支付 webhook 事件模型
"""
from sqlmodel import SQLModel

from .ambassador import (
    Ambassador,
    AmbassadorPayout,
    AmbassadorReferral,
    Commission,
    ReferralClick,
)
from .base import as_utc, new_id, utc_now
from .notification import AmbassadorNotification
from .payment_event import PaymentEvent
from .subscription import Business, Subscription
from .user import User

__all__ = [
    "SQLModel",
    "utc_now",
    "new_id",
    "as_utc",
    "User",
    "Subscription",
    "Business",
    "Ambassador",
    "ReferralClick",
    "AmbassadorReferral",
    "Commission",
    "AmbassadorPayout",
    "AmbassadorNotification",
    "PaymentEvent",
]
