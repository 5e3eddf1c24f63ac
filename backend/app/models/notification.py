"""
大使通知模型模块
"""
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Column, DateTime, ForeignKey, String
from sqlmodel import Field, SQLModel

from app.enums import NotificationType

from .base import new_id, utc_now


class AmbassadorNotification(SQLModel, table=True):
    """
    大使通知模型

    前端轮询未读数量。已读只能从 False 变为 True，read_at 记录第一次已读时间。

    字段说明：
    - type: 通知类型（下单/支付确认/获得佣金）
    - extra: 附加数据（订阅 ID、金额等），数据库列名为 metadata
    """
    __tablename__ = "ambassador_notifications"
    id: str = Field(
        default_factory=new_id,
        sa_column=Column(String(36), primary_key=True),
    )
    ambassador_id: str = Field(
        sa_column=Column(
            String(36), ForeignKey("ambassadors.id", ondelete="CASCADE"), index=True, nullable=False
        )
    )
    type: NotificationType = Field(sa_column=Column(String(32), nullable=False))
    title: str = Field(max_length=255)
    message: str = Field(default="", max_length=1024)
    # "metadata" is reserved on declarative classes.
    extra: dict[str, Any] | None = Field(default=None, sa_column=Column("metadata", JSON))
    read: bool = Field(default=False, index=True)
    read_at: datetime | None = Field(
        default=None, sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
