"""订阅、商家 CRUD 操作"""
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, update
from sqlmodel import Session, col, select

from app.api.errors import AppError
from app.enums import SubscriptionStatus
from app.models import Business, Subscription, utc_now


def get_by_external_payment_id(*, session: Session, payment_id: str) -> Subscription | None:
    """根据支付平台付款 ID 查询订阅（最多一条）"""
    statement = select(Subscription).where(Subscription.external_payment_id == payment_id)
    return session.exec(statement).first()


def get_latest_for_user(*, session: Session, user_id: str) -> Subscription | None:
    statement = (
        select(Subscription)
        .where(Subscription.user_id == user_id)
        .order_by(col(Subscription.created_at).desc())
    )
    return session.exec(statement).first()


def create_pending(
    *,
    session: Session,
    user_id: str,
    external_payment_id: str,
    plan_name: str,
    amount: Decimal,
    expires_at: datetime,
) -> Subscription:
    """
    创建待支付订阅

    同一用户重复提交同一付款 ID 时返回已有记录；付款 ID 属于其他用户时报 409。
    """
    existing = get_by_external_payment_id(session=session, payment_id=external_payment_id)
    if existing:
        if existing.user_id != user_id:
            raise AppError(code=409001, message="Payment already linked to another user", status_code=409)
        return existing

    subscription = Subscription(
        user_id=user_id,
        external_payment_id=external_payment_id,
        plan_name=plan_name,
        amount=amount,
        status=SubscriptionStatus.pending,
        expires_at=expires_at,
    )
    session.add(subscription)
    session.flush()
    return subscription


def activate(*, session: Session, subscription_id: str) -> bool:
    """
    pending -> active（条件更新）

    已是 active、已取消或已过期的订阅都不修改。

    Returns:
        本次调用是否完成了状态转换
    """
    result = session.exec(
        update(Subscription)
        .where(Subscription.id == subscription_id)
        .where(Subscription.status == SubscriptionStatus.pending)
        .values(status=SubscriptionStatus.active, updated_at=utc_now())
    )
    session.commit()
    return result.rowcount == 1


def sync_businesses(
    *,
    session: Session,
    owner_id: str,
    active: bool,
    expires_at: datetime | None,
) -> int:
    """
    覆盖写入用户所有商家的订阅状态

    重复执行结果相同。

    Returns:
        更新的商家数量
    """
    result = session.exec(
        update(Business)
        .where(Business.owner_id == owner_id)
        .values(
            subscription_active=active,
            subscription_expires_at=expires_at,
            updated_at=utc_now(),
        )
    )
    session.commit()
    return result.rowcount


def list_businesses(*, session: Session, owner_id: str) -> list[Business]:
    statement = (
        select(Business)
        .where(Business.owner_id == owner_id)
        .order_by(col(Business.created_at))
    )
    return list(session.exec(statement).all())


def deactivate_businesses(*, session: Session, owner_id: str) -> int:
    """用户没有生效订阅时关闭其所有商家的订阅状态（保留到期时间）"""
    result = session.exec(
        update(Business)
        .where(Business.owner_id == owner_id)
        .where(col(Business.subscription_active).is_(True))
        .values(subscription_active=False, updated_at=utc_now())
    )
    session.commit()
    return result.rowcount


def list_current_active(*, session: Session, now: datetime) -> list[Subscription]:
    """所有未到期的 active 订阅，同一用户按到期时间从晚到早排列"""
    statement = (
        select(Subscription)
        .where(Subscription.status == SubscriptionStatus.active)
        .where(Subscription.expires_at > now)
        .order_by(col(Subscription.user_id), col(Subscription.expires_at).desc())
    )
    return list(session.exec(statement).all())


def list_overdue_active(*, session: Session, now: datetime) -> list[Subscription]:
    """已过到期时间但仍是 active 的订阅"""
    statement = (
        select(Subscription)
        .where(Subscription.status == SubscriptionStatus.active)
        .where(Subscription.expires_at <= now)
    )
    return list(session.exec(statement).all())


def expire(*, session: Session, subscription_id: str, now: datetime) -> bool:
    """active -> expired（条件更新），返回本次是否完成了状态转换"""
    result = session.exec(
        update(Subscription)
        .where(Subscription.id == subscription_id)
        .where(Subscription.status == SubscriptionStatus.active)
        .where(Subscription.expires_at <= now)
        .values(status=SubscriptionStatus.expired, updated_at=utc_now())
    )
    session.commit()
    return result.rowcount == 1


def latest_active_expiry(*, session: Session, user_id: str) -> datetime | None:
    """用户所有 active 订阅中最晚的到期时间"""
    statement = (
        select(func.max(Subscription.expires_at))
        .where(Subscription.user_id == user_id)
        .where(Subscription.status == SubscriptionStatus.active)
    )
    return session.exec(statement).one()


def has_active(*, session: Session, user_id: str, now: datetime) -> bool:
    statement = (
        select(Subscription.id)
        .where(Subscription.user_id == user_id)
        .where(Subscription.status == SubscriptionStatus.active)
        .where(Subscription.expires_at > now)
    )
    return session.exec(statement).first() is not None
