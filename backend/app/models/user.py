"""
用户模型模块

用户身份由外部认证服务管理，这里只保存本服务需要的最少字段。
"""
from datetime import datetime

from sqlalchemy import Column, DateTime, String
from sqlmodel import Field, SQLModel

from .base import new_id, utc_now


class User(SQLModel, table=True):
    """
    用户模型

    字段说明：
    - id: 主键，与认证服务签发的 JWT sub 一致
    - email: 邮箱（唯一）
    - full_name: 姓名（可选）
    - is_admin: 是否为管理员（可访问大使管理后台）
    """
    __tablename__ = "users"
    id: str = Field(
        default_factory=new_id,
        sa_column=Column(String(36), primary_key=True),
    )
    email: str = Field(
        max_length=255,
        sa_column=Column(String(255), unique=True, index=True, nullable=False),
    )
    full_name: str | None = Field(default=None, max_length=128)
    is_admin: bool = Field(default=False)

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
