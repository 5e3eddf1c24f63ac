"""
定时任务逻辑

激活流程中同步商家失败时只记录日志（订阅已经是 active），
这里定期对账，保证商家状态最终与订阅一致：

- reconcile: 用户有生效订阅时，商家状态覆盖为最晚到期的那条订阅；补生成遗漏的佣金
- expire: 到期的订阅改为 expired，用户不再有生效订阅时关闭商家

多个 worker 实例同时运行时用 Redis 锁保证同一时刻只有一个在执行。
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, col, select

from app import crud
from app.core.config import settings
from app.core.db import engine
from app.core.redis import acquire_lock, get_redis, release_lock
from app.enums import SubscriptionStatus
from app.models import AmbassadorReferral, Commission, Subscription, as_utc, utc_now
from app.services import ledger

logger = logging.getLogger(__name__)

RECONCILE_LOCK_KEY = "subscriptions:reconcile:lock"
EXPIRE_LOCK_KEY = "subscriptions:expire:lock"


@dataclass
class ReconcileResult:
    users_synced: int = 0
    businesses_synced: int = 0
    commissions_accrued: int = 0
    failures: int = 0


@dataclass
class ExpireResult:
    subscriptions_expired: int = 0
    businesses_deactivated: int = 0


def _missing_commissions(session: Session) -> list[Subscription]:
    """已激活、已归因但还没有佣金的订阅"""
    statement = (
        select(Subscription)
        .join(AmbassadorReferral, col(AmbassadorReferral.subscription_id) == col(Subscription.id))
        .outerjoin(Commission, col(Commission.referral_id) == col(AmbassadorReferral.id))
        .where(Subscription.status == SubscriptionStatus.active)
        .where(col(Commission.id).is_(None))
    )
    return list(session.exec(statement).all())


def reconcile(session: Session, now: datetime | None = None) -> ReconcileResult:
    now = now or utc_now()
    result = ReconcileResult()

    seen: set[str] = set()
    for subscription in crud.subscription.list_current_active(session=session, now=now):
        if subscription.user_id in seen:
            continue
        seen.add(subscription.user_id)
        try:
            result.businesses_synced += crud.subscription.sync_businesses(
                session=session,
                owner_id=subscription.user_id,
                active=True,
                expires_at=as_utc(subscription.expires_at),
            )
            result.users_synced += 1
        except SQLAlchemyError as exc:
            session.rollback()
            result.failures += 1
            logger.error("Failed to sync businesses of user %s: %s", subscription.user_id, exc)

    for subscription in _missing_commissions(session):
        try:
            if ledger.accrue_commission(session=session, subscription=subscription):
                result.commissions_accrued += 1
        except SQLAlchemyError as exc:
            session.rollback()
            result.failures += 1
            logger.error("Failed to accrue commission for %s: %s", subscription.id, exc)

    return result


def expire(session: Session, now: datetime | None = None) -> ExpireResult:
    now = now or utc_now()
    result = ExpireResult()

    owners: set[str] = set()
    for subscription in crud.subscription.list_overdue_active(session=session, now=now):
        if crud.subscription.expire(session=session, subscription_id=subscription.id, now=now):
            result.subscriptions_expired += 1
            owners.add(subscription.user_id)

    for owner_id in sorted(owners):
        if crud.subscription.has_active(session=session, user_id=owner_id, now=now):
            continue
        result.businesses_deactivated += crud.subscription.deactivate_businesses(
            session=session, owner_id=owner_id
        )
    return result


def _run_locked(lock_key: str, job: Callable[[Session], object]) -> object | None:
    redis_client = get_redis()
    lock_value = str(uuid4())
    if not acquire_lock(
        redis_client, lock_key, lock_value, expire_seconds=settings.RECONCILE_LOCK_TTL_SECONDS
    ):
        logger.info("Task %s already running, skip this run.", lock_key)
        return None
    try:
        with Session(engine) as session:
            return job(session)
    finally:
        release_lock(redis_client, lock_key, lock_value)


def reconcile_subscriptions() -> ReconcileResult | None:
    """定期对账：商家状态、遗漏的佣金"""
    result = _run_locked(RECONCILE_LOCK_KEY, reconcile)
    if result is not None:
        logger.info("Subscription reconcile finished: %s", result)
    return result


def expire_subscriptions() -> ExpireResult | None:
    """定期处理到期订阅"""
    result = _run_locked(EXPIRE_LOCK_KEY, expire)
    if result is not None:
        logger.info("Subscription expiry finished: %s", result)
    return result
