"""
支付 webhook 事件模型模块
"""
from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, String
from sqlmodel import Field, SQLModel

from .base import new_id, utc_now


class PaymentEvent(SQLModel, table=True):
    """
    支付 webhook 投递记录（审计用）

    每次投递激活类事件都追加一条，不做唯一约束：支付平台至少投递一次，
    同一事件可能出现多条，其中最多一条 transitioned=True。

    字段说明：
    - event_type: 事件类型（如 "PAYMENT_CONFIRMED"）
    - payment_id: 支付平台付款 ID
    - subscription_id: 匹配到的订阅 ID
    - transitioned: 本次投递是否把订阅从非 active 变为 active
    - resources_synced: 商家状态同步是否成功
    - payload: 原始请求体
    """
    __tablename__ = "payment_events"

    id: str = Field(
        default_factory=new_id,
        sa_column=Column(String(36), primary_key=True),
    )
    event_type: str = Field(max_length=64)
    payment_id: str = Field(sa_column=Column(String(128), index=True, nullable=False))
    subscription_id: str | None = Field(default=None, max_length=36)
    transitioned: bool = Field(default=False)
    resources_synced: bool = Field(default=True)
    payload: dict | None = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
