"""
订阅模型模块

定义订阅及依赖订阅状态的资源（商家）模型。
"""
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Column, DateTime, ForeignKey, Numeric, String
from sqlmodel import Field, SQLModel

from app.enums import SubscriptionStatus

from .base import new_id, utc_now


class Subscription(SQLModel, table=True):
    """
    订阅记录模型

    用户在 checkout 时创建（pending），支付平台 webhook 确认付款后激活。
    external_payment_id 是支付平台的付款 ID，最多对应一条订阅。

    字段说明：
    - id: 主键
    - user_id: 用户 ID（外键）
    - external_payment_id: 支付平台付款 ID（唯一）
    - plan_name: 套餐名称
    - amount: 订阅金额（用于计算佣金）
    - status: 订阅状态（待支付/激活/取消/过期）
    - expires_at: 订阅到期时间，激活时同步到用户的所有商家
    - created_at / updated_at: 创建、更新时间
    """
    __tablename__ = "subscriptions"
    id: str = Field(
        default_factory=new_id,
        sa_column=Column(String(36), primary_key=True),
    )
    user_id: str = Field(
        sa_column=Column(
            String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    external_payment_id: str = Field(
        sa_column=Column(String(128), unique=True, index=True, nullable=False)
    )
    plan_name: str = Field(default="", max_length=128)
    amount: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=Column(Numeric(12, 2), nullable=False),
    )

    status: SubscriptionStatus = Field(
        default=SubscriptionStatus.pending,
        sa_column=Column(String(16), index=True, nullable=False),
    )
    expires_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class Business(SQLModel, table=True):
    """
    商家模型（依赖订阅状态的资源）

    subscription_active / subscription_expires_at 始终与所有者最近一次
    激活的订阅保持一致，只由激活流程和对账任务写入。
    """
    __tablename__ = "businesses"
    id: str = Field(
        default_factory=new_id,
        sa_column=Column(String(36), primary_key=True),
    )
    owner_id: str = Field(
        sa_column=Column(
            String(36), ForeignKey("users.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    name: str = Field(max_length=255)

    subscription_active: bool = Field(default=False)
    subscription_expires_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
