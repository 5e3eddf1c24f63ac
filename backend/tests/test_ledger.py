from __future__ import annotations

from decimal import Decimal

import pytest
from sqlmodel import select

from app.api.errors import AppError
from app.enums import CommissionStatus, NotificationType, SubscriptionStatus
from app.models import AmbassadorNotification, Commission
from app.services import ledger


@pytest.mark.parametrize(
    ("sale", "rate", "expected"),
    [
        ("99.90", "15", "14.99"),  # 14.985 rounds half up
        ("100.00", "15", "15.00"),
        ("10.00", "33.33", "3.33"),
        ("0.05", "10", "0.01"),  # 0.005 rounds half up
        ("49.90", "0", "0.00"),
        ("49.90", "100", "49.90"),
        ("197.00", "12.5", "24.63"),  # 24.625
    ],
)
def test_calculate_commission(sale, rate, expected):
    assert ledger.calculate_commission(Decimal(sale), Decimal(rate)) == Decimal(expected)


@pytest.mark.parametrize("rate", ["-0.01", "100.01", "250"])
def test_validate_rate_out_of_range(rate):
    with pytest.raises(AppError) as exc_info:
        ledger.validate_rate(Decimal(rate))
    assert exc_info.value.code == 400101


def test_validate_rate_bounds_are_inclusive():
    assert ledger.validate_rate(Decimal("0")) == Decimal("0.00")
    assert ledger.validate_rate(Decimal("100")) == Decimal("100.00")


def _sale(db, make_user, make_subscription, ambassador, payment_id="pay_1", amount="99.90"):
    subscription = make_subscription(
        make_user(), payment_id=payment_id, amount=Decimal(amount), status=SubscriptionStatus.active
    )
    ledger.register_conversion(session=db, ambassador=ambassador, subscription=subscription)
    db.commit()
    return subscription


def test_accrue_commission_is_once_per_referral(db, make_user, make_ambassador, make_subscription):
    ambassador = make_ambassador(rate=Decimal("20"))
    subscription = _sale(db, make_user, make_subscription, ambassador)

    first = ledger.accrue_commission(session=db, subscription=subscription)
    second = ledger.accrue_commission(session=db, subscription=subscription)
    assert first is not None and second is not None
    assert first.id == second.id
    assert first.commission_amount == Decimal("19.98")
    assert len(db.exec(select(Commission)).all()) == 1

    db.refresh(ambassador)
    assert ambassador.total_sales == 1


def test_register_conversion_is_once_per_subscription(db, make_user, make_ambassador, make_subscription):
    ambassador = make_ambassador()
    subscription = _sale(db, make_user, make_subscription, ambassador)
    assert ledger.register_conversion(session=db, ambassador=ambassador, subscription=subscription) is None


def test_accrue_without_referral(db, make_user, make_subscription):
    subscription = make_subscription(make_user(), status=SubscriptionStatus.active)
    assert ledger.accrue_commission(session=db, subscription=subscription) is None


def test_rate_change_does_not_touch_existing_commissions(db, make_user, make_ambassador, make_subscription):
    ambassador = make_ambassador(rate=Decimal("15"))
    old_sale = _sale(db, make_user, make_subscription, ambassador, payment_id="pay_old")
    old = ledger.accrue_commission(session=db, subscription=old_sale)

    ledger.update_commission_rate(session=db, ambassador_id=ambassador.id, rate=Decimal("25"))

    new_sale = _sale(db, make_user, make_subscription, ambassador, payment_id="pay_new")
    new = ledger.accrue_commission(session=db, subscription=new_sale)

    db.refresh(old)
    assert old.commission_rate == Decimal("15.00")
    assert old.commission_amount == Decimal("14.99")
    assert new.commission_rate == Decimal("25.00")
    assert new.commission_amount == Decimal("24.98")  # 24.975


def test_mark_commission_paid(db, make_user, make_ambassador, make_subscription):
    ambassador = make_ambassador(rate=Decimal("10"))
    subscription = _sale(db, make_user, make_subscription, ambassador, amount="200.00")
    commission = ledger.accrue_commission(session=db, subscription=subscription)

    paid = ledger.mark_commission_paid(session=db, commission_id=commission.id)
    assert paid.status == CommissionStatus.paid
    assert paid.paid_at is not None

    again = ledger.mark_commission_paid(session=db, commission_id=commission.id)
    assert again.paid_at == paid.paid_at

    db.refresh(ambassador)
    assert ambassador.pending_commission == Decimal("0.00")
    assert ambassador.total_earnings == Decimal("20.00")


def test_mark_unknown_commission(db):
    with pytest.raises(AppError) as exc_info:
        ledger.mark_commission_paid(session=db, commission_id="missing")
    assert exc_info.value.status_code == 404


def test_ambassador_stats(db, make_user, make_ambassador, make_subscription):
    ambassador = make_ambassador(rate=Decimal("10"))
    for i, amount in enumerate(["100.00", "50.00"]):
        subscription = _sale(db, make_user, make_subscription, ambassador, f"pay_{i}", amount)
        ledger.accrue_commission(session=db, subscription=subscription)
    ambassador.link_clicks = 8
    db.add(ambassador)
    db.commit()
    db.refresh(ambassador)

    stats = ledger.ambassador_stats(session=db, ambassador=ambassador)
    assert stats.total_conversions == 2
    assert stats.conversion_rate == 25.0
    assert stats.pending_commission == Decimal("15.00")
    assert stats.this_month_conversions == 2
    assert stats.this_month_earnings == Decimal("15.00")
    assert stats.average_ticket == Decimal("75.00")


def test_admin_stats(db, make_ambassador):
    make_ambassador(code="AAA")
    make_ambassador(code="BBB", active=False)

    stats = ledger.admin_stats(session=db)
    assert stats.total_ambassadors == 2
    assert stats.active_ambassadors == 1
    assert stats.avg_conversion_rate == 0.0
    assert stats.this_month_new_ambassadors == 2


def test_create_payout_settles_pending_commissions(db, make_user, make_ambassador, make_subscription):
    ambassador = make_ambassador(rate=Decimal("10"))
    commissions = [
        ledger.accrue_commission(
            session=db,
            subscription=_sale(db, make_user, make_subscription, ambassador, payment_id=p, amount=a),
        )
        for p, a in (("pay_a", "100.00"), ("pay_b", "50.00"), ("pay_c", "30.00"))
    ]
    # Already paid on its own, stays out of the payout.
    ledger.mark_commission_paid(session=db, commission_id=commissions[2].id)

    payout = ledger.create_payout(
        session=db, ambassador_id=ambassador.id, reference_period="2026-09", payment_method="pix"
    )
    assert payout.total_sales == 2
    assert payout.gross_amount == Decimal("15.00")
    assert payout.net_amount == Decimal("15.00")
    assert payout.reference_period == "2026-09"

    for commission in commissions:
        db.refresh(commission)
        assert commission.status == CommissionStatus.paid
    assert {c.payout_id for c in commissions[:2]} == {payout.id}
    assert commissions[2].payout_id is None

    db.refresh(ambassador)
    assert ambassador.pending_commission == Decimal("0.00")
    assert ambassador.total_earnings == Decimal("18.00")

    notification = db.exec(
        select(AmbassadorNotification).where(
            AmbassadorNotification.type == NotificationType.payout_paid
        )
    ).one()
    assert notification.extra["payout_id"] == payout.id

    with pytest.raises(AppError) as exc_info:
        ledger.create_payout(session=db, ambassador_id=ambassador.id)
    assert exc_info.value.code == 400102


def test_create_payout_net_amount(db, make_user, make_ambassador, make_subscription):
    ambassador = make_ambassador(rate=Decimal("10"))
    subscription = _sale(db, make_user, make_subscription, ambassador, amount="200.00")
    ledger.accrue_commission(session=db, subscription=subscription)

    with pytest.raises(AppError) as exc_info:
        ledger.create_payout(session=db, ambassador_id=ambassador.id, net_amount=Decimal("20.01"))
    assert exc_info.value.code == 400103

    payout = ledger.create_payout(session=db, ambassador_id=ambassador.id, net_amount=Decimal("18.5"))
    assert payout.gross_amount == Decimal("20.00")
    assert payout.net_amount == Decimal("18.50")
    assert payout.reference_period == ledger.current_period()


def test_create_payout_unknown_ambassador(db):
    with pytest.raises(AppError) as exc_info:
        ledger.create_payout(session=db, ambassador_id="missing")
    assert exc_info.value.status_code == 404
