"""
API 请求/响应数据模型（Schema）

定义所有 API 接口的请求和响应数据结构。
这些模型不是数据库表，只用于 API 数据交换；外部输入（尤其是 webhook）
在这里完成校验，业务层拿到的都是已校验的结构。
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from app.enums import CommissionStatus, NotificationType, PaymentMethod, SubscriptionStatus

# ============================================================
# 通用响应模型
# ============================================================


class TokenPayload(BaseModel):
    """JWT Token 载荷模型，sub 为用户 ID"""
    sub: str | None = None


class ApiEnvelope(BaseModel):
    """
    API 统一响应格式

    - code: 状态码（0 表示成功，非 0 表示错误）
    - message: 消息
    - data: 业务数据

    示例响应：
        {"code": 0, "message": "success", "data": {...}}
        {"code": 404002, "message": "Ambassador not found", "data": None}
    """
    code: int = 0
    message: str = "success"
    data: Any | None = None


# ============================================================
# 推荐归因
# ============================================================


class ReferralClickRequest(BaseModel):
    """推荐链接点击请求"""
    referral_code: str = Field(min_length=1, max_length=64)
    utm_source: str | None = Field(default=None, max_length=128)
    utm_medium: str | None = Field(default=None, max_length=128)
    utm_campaign: str | None = Field(default=None, max_length=128)


class ReferralCodeData(BaseModel):
    """当前浏览器生效的推荐码（没有时为 None）"""
    referral_code: str | None = None


# ============================================================
# 支付 webhook
# ============================================================


class PaymentPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = Field(default=None, max_length=128)
    status: str | None = None
    value: Decimal | None = None


class PaymentWebhook(BaseModel):
    """
    支付平台 webhook 请求体

    至少包含 {"event": "...", "payment": {"id": "..."}}，其余字段忽略。
    """
    model_config = ConfigDict(extra="ignore")

    event: str = Field(min_length=1, max_length=64)
    payment: PaymentPayload | None = None

    @property
    def payment_id(self) -> str | None:
        if self.payment is None or not self.payment.id:
            return None
        return self.payment.id


# ============================================================
# 订阅 / checkout
# ============================================================


class CheckoutRequest(BaseModel):
    """
    checkout 请求

    付款由支付平台创建，客户端把付款 ID 传过来建立待支付订阅。
    """
    plan_name: str = Field(min_length=1, max_length=128)
    amount: Decimal = Field(ge=0, max_digits=12, decimal_places=2)
    external_payment_id: str = Field(min_length=1, max_length=128)
    period_days: int | None = Field(default=None, ge=1, le=3660)


class SubscriptionData(BaseModel):
    id: str
    plan_name: str
    amount: Decimal
    status: SubscriptionStatus
    external_payment_id: str
    expires_at: datetime
    created_at: datetime


class BusinessData(BaseModel):
    id: str
    name: str
    subscription_active: bool
    subscription_expires_at: datetime | None = None


class CheckoutData(BaseModel):
    subscription: SubscriptionData
    referral_code: str | None = None  # 本次订单归因到的推荐码


class SubscriptionStatusData(BaseModel):
    subscription: SubscriptionData | None = None
    businesses: list[BusinessData] = []


# ============================================================
# 大使 / 佣金
# ============================================================


class AmbassadorCreateRequest(BaseModel):
    user_id: str = Field(min_length=1, max_length=36)
    referral_code: str = Field(min_length=3, max_length=32)
    commission_rate: Decimal | None = Field(default=None, ge=0, le=100)


class CommissionRateUpdateRequest(BaseModel):
    """佣金比例（%），取值 0-100"""
    rate: Decimal = Field(ge=0, le=100)


class AmbassadorStatusUpdateRequest(BaseModel):
    active: bool


class AmbassadorData(BaseModel):
    id: str
    user_id: str
    referral_code: str
    commission_rate: Decimal
    active: bool
    link_clicks: int
    total_sales: int
    total_earnings: Decimal
    pending_commission: Decimal
    created_at: datetime


class CommissionData(BaseModel):
    id: str
    ambassador_id: str
    subscription_id: str
    sale_amount: Decimal
    commission_rate: Decimal
    commission_amount: Decimal
    status: CommissionStatus
    paid_at: datetime | None = None
    payout_id: str | None = None
    created_at: datetime


class PayoutCreateRequest(BaseModel):
    """
    结算请求，所有字段可选

    - reference_period: 结算月份 YYYY-MM，默认当前月
    - net_amount: 实际打款金额，默认等于佣金合计
    """
    reference_period: str | None = Field(default=None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    net_amount: Decimal | None = Field(default=None, ge=0)
    payment_method: PaymentMethod | None = None
    notes: str | None = Field(default=None, max_length=1024)


class PayoutData(BaseModel):
    id: str
    ambassador_id: str
    reference_period: str
    total_sales: int
    gross_amount: Decimal
    net_amount: Decimal
    payment_method: str | None = None
    notes: str | None = None
    paid_at: datetime
    created_at: datetime


class PayoutDetailData(BaseModel):
    payout: PayoutData
    commissions: list[CommissionData]


class AmbassadorStatsData(BaseModel):
    total_clicks: int
    total_conversions: int
    conversion_rate: float
    total_earnings: Decimal
    pending_commission: Decimal
    this_month_clicks: int
    this_month_conversions: int
    this_month_earnings: Decimal
    average_ticket: Decimal


class AmbassadorDashboardData(BaseModel):
    ambassador: AmbassadorData
    stats: AmbassadorStatsData


class AdminStatsData(BaseModel):
    total_ambassadors: int
    active_ambassadors: int
    total_clicks: int
    total_conversions: int
    total_commissions_paid: Decimal
    total_pending_commissions: Decimal
    avg_conversion_rate: float
    this_month_new_ambassadors: int


# ============================================================
# 通知
# ============================================================


class NotificationData(BaseModel):
    id: str
    type: NotificationType
    title: str
    message: str
    metadata: dict[str, Any] | None = None
    read: bool
    read_at: datetime | None = None
    created_at: datetime


class NotificationsListData(BaseModel):
    data: list[NotificationData]
    count: int


class UnreadCountData(BaseModel):
    count: int
    poll_interval_seconds: int  # 前端轮询间隔


class MarkReadData(BaseModel):
    updated: bool  # 本次是否有状态变化


class MarkAllReadData(BaseModel):
    updated: int  # 本次标记为已读的条数
