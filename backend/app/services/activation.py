"""
订阅激活服务（支付平台 webhook）

只有 PAYMENT_RECEIVED / PAYMENT_CONFIRMED 会触发激活，其他事件直接忽略。

激活分两步：
1. 订阅状态 pending -> active（条件更新）
2. 用户所有商家的 subscription_active / subscription_expires_at 覆盖写入，
   到期时间取用户所有 active 订阅中最晚的一个，与对账任务一致

已取消或已过期的订阅不会被重新激活，事件只记录不处理。

支付平台至少投递一次，同一事件可能重复到达：
- 第 1 步是条件更新，只有一次投递能完成状态转换，佣金只在这次投递中生成
- 第 2 步是覆盖写入，重复执行结果不变

第 2 步失败时不回滚第 1 步，只记录日志，由对账任务（app.worker.tasks）修复。
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app import crud
from app.api.errors import AppError
from app.enums import ACTIVATING_EVENTS, SubscriptionStatus
from app.models import PaymentEvent, Subscription, as_utc
from app.services import ledger

logger = logging.getLogger(__name__)


@dataclass
class ActivationResult:
    subscription_id: str
    businesses_activated: int
    already_active: bool
    resources_synced: bool
    # 订阅已取消或已过期时为其状态，事件不做处理
    skipped_status: str | None = None


def is_activating_event(event_type: str) -> bool:
    return event_type in ACTIVATING_EVENTS


def subscription_not_found() -> AppError:
    return AppError(code=404001, message="Subscription not found", status_code=404)


def _sync_resources(session: Session, subscription: Subscription) -> tuple[int, bool]:
    try:
        latest = crud.subscription.latest_active_expiry(session=session, user_id=subscription.user_id)
        count = crud.subscription.sync_businesses(
            session=session,
            owner_id=subscription.user_id,
            active=True,
            expires_at=as_utc(latest or subscription.expires_at),
        )
        return count, True
    except SQLAlchemyError:
        session.rollback()
        logger.exception(
            "Subscription %s activated but business sync failed for user %s",
            subscription.id,
            subscription.user_id,
        )
        return 0, False


def _accrue_commission(session: Session, subscription: Subscription) -> None:
    try:
        ledger.accrue_commission(session=session, subscription=subscription)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Commission accrual failed for subscription %s", subscription.id)


def _record_event(
    session: Session,
    *,
    event_type: str,
    payment_id: str,
    result: ActivationResult,
    payload: dict[str, Any] | None,
) -> None:
    try:
        session.add(
            PaymentEvent(
                event_type=event_type,
                payment_id=payment_id,
                subscription_id=result.subscription_id,
                transitioned=not result.already_active and result.skipped_status is None,
                resources_synced=result.resources_synced,
                payload=payload,
            )
        )
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Failed to record payment event %s for %s", event_type, payment_id)


def activate_subscription(
    *,
    session: Session,
    event_type: str,
    payment_id: str,
    payload: dict[str, Any] | None = None,
) -> ActivationResult:
    """
    处理一次激活类支付事件

    Raises:
        AppError: 找不到付款对应的订阅（404）
    """
    subscription = crud.subscription.get_by_external_payment_id(session=session, payment_id=payment_id)
    if subscription is None:
        logger.info("No subscription for payment %s (%s)", payment_id, event_type)
        raise subscription_not_found()

    subscription_id = subscription.id
    transitioned = crud.subscription.activate(session=session, subscription_id=subscription_id)
    session.refresh(subscription)
    if transitioned:
        logger.info("Subscription %s activated by %s %s", subscription_id, event_type, payment_id)
    elif subscription.status != SubscriptionStatus.active:
        status = SubscriptionStatus(subscription.status).value
        logger.info(
            "Subscription %s is %s, ignore %s %s",
            subscription_id,
            status,
            event_type,
            payment_id,
        )
        result = ActivationResult(
            subscription_id=subscription_id,
            businesses_activated=0,
            already_active=False,
            resources_synced=False,
            skipped_status=status,
        )
        _record_event(
            session, event_type=event_type, payment_id=payment_id, result=result, payload=payload
        )
        return result
    else:
        logger.info("Subscription %s already active, skip status update", subscription_id)

    count, synced = _sync_resources(session, subscription)

    if transitioned:
        _accrue_commission(session, subscription)

    result = ActivationResult(
        subscription_id=subscription_id,
        businesses_activated=count,
        already_active=not transitioned,
        resources_synced=synced,
    )
    _record_event(
        session, event_type=event_type, payment_id=payment_id, result=result, payload=payload
    )
    return result
