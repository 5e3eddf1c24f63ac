"""推荐点击、推荐成交 CRUD 操作"""
from sqlalchemy import update
from sqlmodel import Session, select

from app.models import (
    Ambassador,
    AmbassadorReferral,
    ReferralClick,
    Subscription,
    utc_now,
)


def get_ambassador_by_code(*, session: Session, code: str) -> Ambassador | None:
    """根据推荐码查询大使"""
    statement = select(Ambassador).where(Ambassador.referral_code == code)
    return session.exec(statement).first()


def record_click(
    *,
    session: Session,
    code: str,
    utm_source: str | None = None,
    utm_medium: str | None = None,
    utm_campaign: str | None = None,
) -> ReferralClick:
    """记录一次推荐链接点击，推荐码属于某个大使时累加其点击数"""
    ambassador = get_ambassador_by_code(session=session, code=code)
    click = ReferralClick(
        ambassador_id=ambassador.id if ambassador else None,
        referral_code=code,
        utm_source=utm_source,
        utm_medium=utm_medium,
        utm_campaign=utm_campaign,
    )
    session.add(click)
    if ambassador:
        # Single UPDATE so concurrent clicks don't lose increments.
        session.exec(
            update(Ambassador)
            .where(Ambassador.id == ambassador.id)
            .values(link_clicks=Ambassador.link_clicks + 1, updated_at=utc_now())
        )
    session.commit()
    session.refresh(click)
    return click


def get_referral_by_subscription(
    *, session: Session, subscription_id: str
) -> AmbassadorReferral | None:
    statement = select(AmbassadorReferral).where(
        AmbassadorReferral.subscription_id == subscription_id
    )
    return session.exec(statement).first()


def create_referral(
    *,
    session: Session,
    ambassador: Ambassador,
    subscription: Subscription,
) -> tuple[AmbassadorReferral, bool]:
    """
    把订阅归因到大使（每个订阅只归因一次）

    Returns:
        (推荐成交记录, 是否为新建)
    """
    existing = get_referral_by_subscription(session=session, subscription_id=subscription.id)
    if existing:
        return existing, False
    referral = AmbassadorReferral(
        ambassador_id=ambassador.id,
        referred_user_id=subscription.user_id,
        subscription_id=subscription.id,
        referral_code=ambassador.referral_code,
        plan_name=subscription.plan_name,
        sale_amount=subscription.amount,
    )
    session.add(referral)
    session.flush()
    return referral, True
