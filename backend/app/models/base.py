"""
基础模型模块

定义所有模型共用的基础类和工具函数。
"""
from datetime import datetime, timezone
from uuid import uuid4

from sqlmodel import SQLModel


def utc_now() -> datetime:
    """
    获取当前 UTC 时间

    Returns:
        当前 UTC 时区的日期时间对象
    """
    return datetime.now(timezone.utc)


def new_id() -> str:
    """生成主键（UUID4 hex，32 位字符串）"""
    return uuid4().hex


def as_utc(value: datetime | None) -> datetime | None:
    """
    统一为带时区的 UTC 时间

    部分数据库（如 SQLite）读回的是不带时区的时间，这里按 UTC 处理。
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


__all__ = ["SQLModel", "utc_now", "new_id", "as_utc"]
