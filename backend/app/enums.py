"""
枚举类型定义模块

所有枚举都继承自 str 和 Enum，这样既可以用作字符串，又具有枚举的特性。
"""
from enum import Enum


class SubscriptionStatus(str, Enum):
    """
    订阅状态枚举

    - pending: 已下单，等待支付确认
    - active: 支付已确认（只由 webhook 激活流程设置）
    - cancelled: 已取消
    - expired: 已过期（由对账任务按 expires_at 设置）
    """
    pending = "pending"
    active = "active"
    cancelled = "cancelled"
    expired = "expired"


class CommissionStatus(str, Enum):
    """
    佣金状态枚举

    只能 pending -> paid，不可逆。
    """
    pending = "pending"
    paid = "paid"


class NotificationType(str, Enum):
    """
    大使通知类型枚举

    - payment_registered: 有人通过推荐码下单
    - payment_confirmed: 推荐订单支付已确认
    - commission_earned: 产生一笔佣金
    - payout_paid: 待支付佣金已打款
    """
    payment_registered = "payment_registered"
    payment_confirmed = "payment_confirmed"
    commission_earned = "commission_earned"
    payout_paid = "payout_paid"


class PaymentEventType(str, Enum):
    """支付平台 webhook 中会触发订阅激活的事件类型"""
    payment_received = "PAYMENT_RECEIVED"
    payment_confirmed = "PAYMENT_CONFIRMED"


ACTIVATING_EVENTS = frozenset(e.value for e in PaymentEventType)


class PaymentMethod(str, Enum):
    """大使打款方式"""
    pix = "pix"
    bank_transfer = "bank_transfer"
