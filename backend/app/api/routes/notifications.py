"""
大使通知路由模块

前端按 poll_interval_seconds 轮询未读数，有新通知时再拉取列表。
标记已读失败（如数据库暂时不可用）只打警告，返回 updated=false/0，不影响页面。
"""
from __future__ import annotations

import logging

from fastapi import APIRouter
from sqlalchemy.exc import SQLAlchemyError

from app import crud
from app.api.deps import CurrentAmbassador, SessionDep
from app.api.schemas import (
    ApiEnvelope,
    MarkAllReadData,
    MarkReadData,
    NotificationData,
    NotificationsListData,
    UnreadCountData,
)
from app.core.config import settings
from app.models import AmbassadorNotification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _notification_data(notification: AmbassadorNotification) -> NotificationData:
    return NotificationData(
        id=notification.id,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        metadata=notification.extra,
        read=notification.read,
        read_at=notification.read_at,
        created_at=notification.created_at,
    )


@router.get("", response_model=ApiEnvelope)
def list_notifications(session: SessionDep, ambassador: CurrentAmbassador) -> ApiEnvelope:
    """最近的通知（新的在前）"""
    notifications = crud.notification.list_for_ambassador(
        session=session,
        ambassador_id=ambassador.id,
        limit=settings.NOTIFICATIONS_PAGE_LIMIT,
    )
    return ApiEnvelope(
        data=NotificationsListData(
            data=[_notification_data(n) for n in notifications], count=len(notifications)
        )
    )


@router.get("/unread-count", response_model=ApiEnvelope)
def unread_count(session: SessionDep, ambassador: CurrentAmbassador) -> ApiEnvelope:
    count = crud.notification.count_unread(session=session, ambassador_id=ambassador.id)
    return ApiEnvelope(
        data=UnreadCountData(
            count=count, poll_interval_seconds=settings.NOTIFICATION_POLL_INTERVAL_SECONDS
        )
    )


@router.post("/read-all", response_model=ApiEnvelope)
def mark_all_read(session: SessionDep, ambassador: CurrentAmbassador) -> ApiEnvelope:
    try:
        updated = crud.notification.mark_all_read(session=session, ambassador_id=ambassador.id)
    except SQLAlchemyError as exc:
        session.rollback()
        logger.warning("Failed to mark notifications read for %s: %s", ambassador.id, exc)
        updated = 0
    return ApiEnvelope(data=MarkAllReadData(updated=updated))


@router.post("/{notification_id}/read", response_model=ApiEnvelope)
def mark_read(
    session: SessionDep, ambassador: CurrentAmbassador, notification_id: str
) -> ApiEnvelope:
    """标记单条通知为已读（已读的通知不会变回未读）"""
    try:
        updated = crud.notification.mark_read(
            session=session, ambassador_id=ambassador.id, notification_id=notification_id
        )
    except SQLAlchemyError as exc:
        session.rollback()
        logger.warning("Failed to mark notification %s read: %s", notification_id, exc)
        updated = False
    return ApiEnvelope(data=MarkReadData(updated=updated))
