from __future__ import annotations

from decimal import Decimal

from app.enums import SubscriptionStatus
from app.services import ledger

BASE = "/api/v1/ambassadors"


def test_admin_creates_ambassador(client, make_user, auth_headers):
    admin = make_user(is_admin=True)
    member = make_user()

    r = client.post(
        BASE,
        headers=auth_headers(admin),
        json={"user_id": member.id, "referral_code": "joao-2026"},
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["referral_code"] == "JOAO-2026"
    assert Decimal(data["commission_rate"]) == Decimal("15")
    assert data["active"] is True

    r = client.post(
        BASE,
        headers=auth_headers(admin),
        json={"user_id": make_user().id, "referral_code": "JOAO-2026"},
    )
    assert r.status_code == 409

    r = client.get(BASE, headers=auth_headers(admin))
    assert [a["referral_code"] for a in r.json()["data"]] == ["JOAO-2026"]


def test_create_ambassador_errors(client, make_user, auth_headers):
    admin = make_user(is_admin=True)
    headers = auth_headers(admin)

    r = client.post(BASE, headers=headers, json={"user_id": "missing", "referral_code": "GOOD1"})
    assert r.status_code == 404

    r = client.post(BASE, headers=headers, json={"user_id": admin.id, "referral_code": "bad code"})
    assert r.status_code == 400

    r = client.post(
        BASE,
        headers=headers,
        json={"user_id": admin.id, "referral_code": "GOOD1", "commission_rate": "120"},
    )
    assert r.status_code == 422


def test_admin_routes_require_admin(client, make_user, auth_headers):
    r = client.get(BASE, headers=auth_headers(make_user()))
    assert r.status_code == 403
    assert r.json()["code"] == 403001

    r = client.get(BASE, headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401


def test_update_commission_rate(client, make_user, make_ambassador, auth_headers):
    admin = make_user(is_admin=True)
    ambassador = make_ambassador()
    url = f"{BASE}/{ambassador.id}/commission-rate"

    r = client.patch(url, headers=auth_headers(admin), json={"rate": "22.5"})
    assert r.status_code == 200
    assert Decimal(r.json()["data"]["commission_rate"]) == Decimal("22.50")

    r = client.patch(url, headers=auth_headers(admin), json={"rate": "100.5"})
    assert r.status_code == 422

    r = client.patch(f"{BASE}/missing/commission-rate", headers=auth_headers(admin), json={"rate": "5"})
    assert r.status_code == 404


def test_update_status(client, make_user, make_ambassador, auth_headers):
    admin = make_user(is_admin=True)
    ambassador = make_ambassador()

    r = client.patch(
        f"{BASE}/{ambassador.id}/status", headers=auth_headers(admin), json={"active": False}
    )
    assert r.status_code == 200
    assert r.json()["data"]["active"] is False


def test_commissions_and_payout(client, db, make_user, make_ambassador, make_subscription, auth_headers):
    admin = make_user(is_admin=True)
    ambassador = make_ambassador(rate=Decimal("10"))
    subscription = make_subscription(
        make_user(), amount=Decimal("80.00"), status=SubscriptionStatus.active
    )
    ledger.register_conversion(session=db, ambassador=ambassador, subscription=subscription)
    db.commit()
    commission = ledger.accrue_commission(session=db, subscription=subscription)

    r = client.get(f"{BASE}/{ambassador.id}/commissions", headers=auth_headers(admin))
    assert r.status_code == 200
    rows = r.json()["data"]
    assert len(rows) == 1
    assert Decimal(rows[0]["commission_amount"]) == Decimal("8.00")
    assert rows[0]["status"] == "pending"

    r = client.post(f"{BASE}/commissions/{commission.id}/pay", headers=auth_headers(admin))
    assert r.status_code == 200
    assert r.json()["data"]["status"] == "paid"

    r = client.get(f"{BASE}/me", headers=auth_headers(make_user()))
    assert r.status_code == 403


def test_ambassador_dashboard(client, make_ambassador, make_user, auth_headers):
    owner = make_user()
    make_ambassador(code="DASH01", user=owner)
    client.post("/api/v1/referral/click", json={"referral_code": "DASH01"})

    r = client.get(f"{BASE}/me", headers=auth_headers(owner))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["ambassador"]["referral_code"] == "DASH01"
    assert data["stats"]["total_clicks"] == 1
    assert data["stats"]["this_month_clicks"] == 1
    assert data["stats"]["conversion_rate"] == 0.0

    r = client.get(f"{BASE}/me/commissions", headers=auth_headers(owner))
    assert r.json()["data"] == []


def test_admin_stats_route(client, make_user, make_ambassador, auth_headers):
    make_ambassador(code="STAT01")
    r = client.get(f"{BASE}/stats", headers=auth_headers(make_user(is_admin=True)))
    assert r.status_code == 200
    assert r.json()["data"]["total_ambassadors"] == 1


def test_payout_routes(client, db, make_user, make_ambassador, make_subscription, auth_headers):
    admin = make_user(is_admin=True)
    member = make_user()
    ambassador = make_ambassador(rate=Decimal("10"), user=member)
    for payment_id, amount in (("pay_1", "80.00"), ("pay_2", "120.00")):
        subscription = make_subscription(
            make_user(), payment_id=payment_id, amount=Decimal(amount), status=SubscriptionStatus.active
        )
        ledger.register_conversion(session=db, ambassador=ambassador, subscription=subscription)
        db.commit()
        ledger.accrue_commission(session=db, subscription=subscription)

    r = client.post(
        f"{BASE}/{ambassador.id}/payouts",
        headers=auth_headers(admin),
        json={"reference_period": "2026-10", "payment_method": "pix", "notes": "October"},
    )
    assert r.status_code == 200
    payout = r.json()["data"]
    assert payout["total_sales"] == 2
    assert Decimal(payout["gross_amount"]) == Decimal("20.00")
    assert payout["payment_method"] == "pix"

    r = client.post(f"{BASE}/{ambassador.id}/payouts", headers=auth_headers(admin), json={})
    assert r.status_code == 400
    assert r.json()["code"] == 400102

    r = client.get(f"{BASE}/payouts", headers=auth_headers(admin))
    assert [p["id"] for p in r.json()["data"]] == [payout["id"]]

    r = client.get(f"{BASE}/payouts/{payout['id']}", headers=auth_headers(admin))
    assert r.status_code == 200
    detail = r.json()["data"]
    assert len(detail["commissions"]) == 2
    assert all(c["status"] == "paid" for c in detail["commissions"])
    assert all(c["payout_id"] == payout["id"] for c in detail["commissions"])

    r = client.get(f"{BASE}/me/payouts", headers=auth_headers(member))
    assert r.status_code == 200
    assert [p["id"] for p in r.json()["data"]] == [payout["id"]]

    r = client.get(f"{BASE}/me", headers=auth_headers(member))
    stats = r.json()["data"]["stats"]
    assert Decimal(stats["total_earnings"]) == Decimal("20.00")
    assert Decimal(stats["pending_commission"]) == Decimal("0.00")


def test_payout_routes_validation(client, make_user, make_ambassador, auth_headers):
    admin = make_user(is_admin=True)
    member = make_user()
    ambassador = make_ambassador(user=member)

    r = client.post(
        f"{BASE}/{ambassador.id}/payouts",
        headers=auth_headers(admin),
        json={"reference_period": "2026-13"},
    )
    assert r.status_code == 422

    r = client.post(
        f"{BASE}/{ambassador.id}/payouts", headers=auth_headers(admin), json={"payment_method": "cash"}
    )
    assert r.status_code == 422

    r = client.post(f"{BASE}/missing/payouts", headers=auth_headers(admin), json={})
    assert r.status_code == 404

    r = client.get(f"{BASE}/payouts/missing", headers=auth_headers(admin))
    assert r.status_code == 404

    r = client.post(f"{BASE}/{ambassador.id}/payouts", headers=auth_headers(member), json={})
    assert r.status_code == 403

    r = client.get(f"{BASE}/me/payouts", headers=auth_headers(make_user()))
    assert r.status_code == 403
