"""
佣金与通知账本服务

订阅激活后，如果该订阅在 checkout 时归因到了某个大使，就生成一笔佣金：

    佣金 = 成交金额 * 佣金比例 / 100（保留 2 位小数，四舍五入）

佣金比例在生成佣金时读取并记录在佣金上，之后管理员修改比例不影响已有佣金。
佣金状态只能 pending -> paid：单笔标记，或按大使整体结算成一条打款记录。

每个关键节点给大使发一条通知（下单、支付确认、获得佣金、打款），前端轮询未读数。
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, func, select

from app import crud
from app.api.errors import AppError
from app.enums import CommissionStatus, NotificationType
from app.models import (
    Ambassador,
    AmbassadorPayout,
    AmbassadorReferral,
    Commission,
    ReferralClick,
    Subscription,
    as_utc,
    utc_now,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
MIN_RATE = Decimal("0")
MAX_RATE = Decimal("100")


def calculate_commission(sale_amount: Decimal, rate: Decimal) -> Decimal:
    """
    计算佣金

    Example:
        >>> calculate_commission(Decimal("99.90"), Decimal("15"))
        Decimal('14.99')
    """
    return (Decimal(sale_amount) * Decimal(rate) / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)


def validate_rate(rate: Decimal) -> Decimal:
    rate = Decimal(rate)
    if rate < MIN_RATE or rate > MAX_RATE:
        raise AppError(code=400101, message="Commission rate must be between 0 and 100", status_code=400)
    return rate.quantize(CENT, rounding=ROUND_HALF_UP)


def update_commission_rate(*, session: Session, ambassador_id: str, rate: Decimal) -> Ambassador:
    """管理员修改大使佣金比例（0-100），只影响之后生成的佣金"""
    rate = validate_rate(rate)
    ambassador = crud.ambassador.get(session=session, ambassador_id=ambassador_id)
    ambassador.commission_rate = rate
    ambassador.updated_at = utc_now()
    session.add(ambassador)
    session.commit()
    session.refresh(ambassador)
    logger.info("Commission rate updated: ambassador=%s rate=%s", ambassador_id, rate)
    return ambassador


def register_conversion(
    *, session: Session, ambassador: Ambassador, subscription: Subscription
) -> AmbassadorReferral | None:
    """
    checkout 时把订单归因到大使，并通知大使有新的推荐订单

    Returns:
        新建的推荐成交记录；该订阅已归因过时返回 None
    """
    referral, created = crud.referral.create_referral(
        session=session, ambassador=ambassador, subscription=subscription
    )
    if not created:
        return None
    crud.notification.add(
        session=session,
        ambassador_id=ambassador.id,
        type=NotificationType.payment_registered,
        title="New referral order",
        message=f"An order for {subscription.plan_name} was placed with your code.",
        extra={"subscription_id": subscription.id, "sale_amount": str(subscription.amount)},
    )
    return referral


def accrue_commission(*, session: Session, subscription: Subscription) -> Commission | None:
    """
    订阅激活后生成佣金

    同一推荐成交只生成一次佣金，重复调用返回已有佣金。

    Returns:
        佣金记录；订阅没有归因到大使时返回 None
    """
    referral = crud.referral.get_referral_by_subscription(
        session=session, subscription_id=subscription.id
    )
    if referral is None:
        return None

    existing = session.exec(
        select(Commission).where(Commission.referral_id == referral.id)
    ).first()
    if existing:
        return existing

    ambassador = crud.ambassador.get(session=session, ambassador_id=referral.ambassador_id)
    rate = Decimal(ambassador.commission_rate)
    amount = calculate_commission(referral.sale_amount, rate)
    commission = Commission(
        ambassador_id=ambassador.id,
        referral_id=referral.id,
        subscription_id=subscription.id,
        sale_amount=referral.sale_amount,
        commission_rate=rate,
        commission_amount=amount,
        status=CommissionStatus.pending,
    )
    session.add(commission)
    try:
        session.flush()
    except IntegrityError:
        # Another delivery created it first.
        session.rollback()
        return session.exec(
            select(Commission).where(Commission.referral_id == referral.id)
        ).first()
    session.exec(
        update(Ambassador)
        .where(Ambassador.id == ambassador.id)
        .values(
            total_sales=Ambassador.total_sales + 1,
            pending_commission=Ambassador.pending_commission + amount,
            updated_at=utc_now(),
        )
    )
    crud.notification.add(
        session=session,
        ambassador_id=ambassador.id,
        type=NotificationType.payment_confirmed,
        title="Referral payment confirmed",
        message=f"The payment for {referral.plan_name} was confirmed.",
        extra={"subscription_id": subscription.id, "sale_amount": str(referral.sale_amount)},
    )
    crud.notification.add(
        session=session,
        ambassador_id=ambassador.id,
        type=NotificationType.commission_earned,
        title="Commission earned",
        message=f"You earned {amount} ({rate}% of {referral.sale_amount}).",
        extra={"commission_amount": str(amount), "commission_rate": str(rate)},
    )
    session.commit()
    session.refresh(commission)
    logger.info(
        "Commission accrued: ambassador=%s subscription=%s amount=%s rate=%s",
        ambassador.id,
        subscription.id,
        amount,
        rate,
    )
    return commission


def mark_commission_paid(*, session: Session, commission_id: str) -> Commission:
    """佣金 pending -> paid，已支付的佣金原样返回"""
    commission = crud.ambassador.get_commission(session=session, commission_id=commission_id)
    if commission.status == CommissionStatus.paid:
        return commission

    result = session.exec(
        update(Commission)
        .where(Commission.id == commission_id)
        .where(Commission.status == CommissionStatus.pending)
        .values(status=CommissionStatus.paid, paid_at=utc_now(), updated_at=utc_now())
    )
    if result.rowcount == 1:
        amount = Decimal(commission.commission_amount)
        session.exec(
            update(Ambassador)
            .where(Ambassador.id == commission.ambassador_id)
            .values(
                pending_commission=Ambassador.pending_commission - amount,
                total_earnings=Ambassador.total_earnings + amount,
                updated_at=utc_now(),
            )
        )
    session.commit()
    session.refresh(commission)
    return commission


def current_period(now: datetime | None = None) -> str:
    return (now or utc_now()).strftime("%Y-%m")


def create_payout(
    *,
    session: Session,
    ambassador_id: str,
    reference_period: str | None = None,
    net_amount: Decimal | None = None,
    payment_method: str | None = None,
    notes: str | None = None,
) -> AmbassadorPayout:
    """
    结算大使所有待支付佣金，生成一条打款记录

    被结算的佣金关联到打款记录并改为 paid，大使的 pending_commission 转入 total_earnings。
    net_amount 为实际到账金额，不传时等于佣金合计。

    Raises:
        AppError: 大使不存在（404）、没有待支付佣金（400）、
            实际金额超出合计（400）、佣金被并发结算（409）
    """
    ambassador = crud.ambassador.get(session=session, ambassador_id=ambassador_id)
    commissions = crud.payout.list_unsettled_commissions(session=session, ambassador_id=ambassador.id)
    if not commissions:
        raise AppError(code=400102, message="No pending commissions to pay", status_code=400)

    gross = sum((Decimal(c.commission_amount) for c in commissions), Decimal("0.00"))
    net = gross if net_amount is None else Decimal(net_amount).quantize(CENT, rounding=ROUND_HALF_UP)
    if net < 0 or net > gross:
        raise AppError(
            code=400103, message="Net amount must be between 0 and the gross amount", status_code=400
        )

    now = utc_now()
    payout = AmbassadorPayout(
        ambassador_id=ambassador.id,
        reference_period=reference_period or current_period(now),
        total_sales=len(commissions),
        gross_amount=gross,
        net_amount=net,
        payment_method=payment_method,
        notes=notes,
        paid_at=now,
    )
    session.add(payout)
    session.flush()

    ids = [c.id for c in commissions]
    result = session.exec(
        update(Commission)
        .where(col(Commission.id).in_(ids))
        .where(Commission.status == CommissionStatus.pending)
        .where(col(Commission.payout_id).is_(None))
        .values(status=CommissionStatus.paid, payout_id=payout.id, paid_at=now, updated_at=now)
    )
    if result.rowcount != len(ids):
        session.rollback()
        raise AppError(code=409003, message="Commissions changed, retry the payout", status_code=409)

    session.exec(
        update(Ambassador)
        .where(Ambassador.id == ambassador.id)
        .values(
            pending_commission=Ambassador.pending_commission - gross,
            total_earnings=Ambassador.total_earnings + gross,
            updated_at=now,
        )
    )
    crud.notification.add(
        session=session,
        ambassador_id=ambassador.id,
        type=NotificationType.payout_paid,
        title="Payout sent",
        message=f"{len(ids)} commission(s) for {payout.reference_period} were paid: {net}.",
        extra={"payout_id": payout.id, "gross_amount": str(gross), "net_amount": str(net)},
    )
    session.commit()
    session.refresh(payout)
    logger.info(
        "Payout created: ambassador=%s payout=%s commissions=%d gross=%s net=%s",
        ambassador.id,
        payout.id,
        len(ids),
        gross,
        net,
    )
    return payout


@dataclass
class AmbassadorStats:
    total_clicks: int
    total_conversions: int
    conversion_rate: float
    total_earnings: Decimal
    pending_commission: Decimal
    this_month_clicks: int
    this_month_conversions: int
    this_month_earnings: Decimal
    average_ticket: Decimal


@dataclass
class AdminStats:
    total_ambassadors: int
    active_ambassadors: int
    total_clicks: int
    total_conversions: int
    total_commissions_paid: Decimal
    total_pending_commissions: Decimal
    avg_conversion_rate: float
    this_month_new_ambassadors: int


def _start_of_month(now: datetime) -> datetime:
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _conversion_rate(conversions: int, clicks: int) -> float:
    if clicks <= 0:
        return 0.0
    return round(conversions / clicks * 100, 2)


def ambassador_stats(
    *, session: Session, ambassador: Ambassador, now: datetime | None = None
) -> AmbassadorStats:
    """大使个人看板统计"""
    month_start = _start_of_month(now or utc_now())

    this_month_clicks = session.exec(
        select(func.count())
        .select_from(ReferralClick)
        .where(ReferralClick.ambassador_id == ambassador.id)
        .where(ReferralClick.created_at >= month_start)
    ).one()

    commissions = crud.ambassador.list_commissions(session=session, ambassador_id=ambassador.id)
    this_month = [c for c in commissions if as_utc(c.created_at) >= month_start]
    total_sales_amount = sum((Decimal(c.sale_amount) for c in commissions), Decimal("0"))
    average_ticket = (
        (total_sales_amount / len(commissions)).quantize(CENT, rounding=ROUND_HALF_UP)
        if commissions
        else Decimal("0.00")
    )

    return AmbassadorStats(
        total_clicks=ambassador.link_clicks,
        total_conversions=ambassador.total_sales,
        conversion_rate=_conversion_rate(ambassador.total_sales, ambassador.link_clicks),
        total_earnings=Decimal(ambassador.total_earnings),
        pending_commission=Decimal(ambassador.pending_commission),
        this_month_clicks=this_month_clicks,
        this_month_conversions=len(this_month),
        this_month_earnings=sum(
            (Decimal(c.commission_amount) for c in this_month), Decimal("0.00")
        ),
        average_ticket=average_ticket,
    )


def admin_stats(*, session: Session, now: datetime | None = None) -> AdminStats:
    """管理后台大使汇总统计"""
    month_start = _start_of_month(now or utc_now())
    ambassadors = list(session.exec(select(Ambassador).order_by(col(Ambassador.created_at))).all())

    with_clicks = [a for a in ambassadors if a.link_clicks > 0]
    avg_rate = (
        round(
            sum(a.total_sales / a.link_clicks * 100 for a in with_clicks) / len(with_clicks), 2
        )
        if with_clicks
        else 0.0
    )

    return AdminStats(
        total_ambassadors=len(ambassadors),
        active_ambassadors=sum(1 for a in ambassadors if a.active),
        total_clicks=sum(a.link_clicks for a in ambassadors),
        total_conversions=sum(a.total_sales for a in ambassadors),
        total_commissions_paid=sum(
            (Decimal(a.total_earnings) for a in ambassadors), Decimal("0.00")
        ),
        total_pending_commissions=sum(
            (Decimal(a.pending_commission) for a in ambassadors), Decimal("0.00")
        ),
        avg_conversion_rate=avg_rate,
        this_month_new_ambassadors=sum(
            1 for a in ambassadors if as_utc(a.created_at) >= month_start
        ),
    )
