"""大使通知 CRUD 操作"""
from typing import Any

from sqlalchemy import update
from sqlmodel import Session, col, func, select

from app.api.errors import AppError
from app.enums import NotificationType
from app.models import AmbassadorNotification, utc_now


def add(
    *,
    session: Session,
    ambassador_id: str,
    type: NotificationType,
    title: str,
    message: str,
    extra: dict[str, Any] | None = None,
) -> AmbassadorNotification:
    """新增通知（不提交，由调用方和业务数据一起提交）"""
    notification = AmbassadorNotification(
        ambassador_id=ambassador_id,
        type=type,
        title=title,
        message=message,
        extra=extra,
    )
    session.add(notification)
    return notification


def list_for_ambassador(
    *, session: Session, ambassador_id: str, limit: int
) -> list[AmbassadorNotification]:
    statement = (
        select(AmbassadorNotification)
        .where(AmbassadorNotification.ambassador_id == ambassador_id)
        .order_by(col(AmbassadorNotification.created_at).desc())
        .limit(limit)
    )
    return list(session.exec(statement).all())


def count_unread(*, session: Session, ambassador_id: str) -> int:
    statement = (
        select(func.count())
        .select_from(AmbassadorNotification)
        .where(AmbassadorNotification.ambassador_id == ambassador_id)
        .where(col(AmbassadorNotification.read).is_(False))
    )
    return session.exec(statement).one()


def mark_read(*, session: Session, ambassador_id: str, notification_id: str) -> bool:
    """
    标记单条通知为已读

    已读通知保持原来的 read_at，不会变回未读。

    Returns:
        本次是否有状态变化
    """
    notification = session.get(AmbassadorNotification, notification_id)
    if not notification or notification.ambassador_id != ambassador_id:
        raise AppError(code=404004, message="Notification not found", status_code=404)
    result = session.exec(
        update(AmbassadorNotification)
        .where(AmbassadorNotification.id == notification_id)
        .where(col(AmbassadorNotification.read).is_(False))
        .values(read=True, read_at=utc_now())
    )
    session.commit()
    return result.rowcount == 1


def mark_all_read(*, session: Session, ambassador_id: str) -> int:
    """标记大使的全部未读通知为已读，返回更新条数"""
    result = session.exec(
        update(AmbassadorNotification)
        .where(AmbassadorNotification.ambassador_id == ambassador_id)
        .where(col(AmbassadorNotification.read).is_(False))
        .values(read=True, read_at=utc_now())
    )
    session.commit()
    return result.rowcount
