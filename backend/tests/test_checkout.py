from __future__ import annotations

from decimal import Decimal

from sqlmodel import select

from app.core.config import settings
from app.enums import NotificationType
from app.models import AmbassadorNotification, AmbassadorReferral, Subscription


def _checkout(client, headers, payment_id: str = "pay_123", amount: str = "99.90"):
    return client.post(
        "/api/v1/subscription/checkout",
        headers=headers,
        json={"plan_name": "Anual", "amount": amount, "external_payment_id": payment_id},
    )


def test_checkout_stamps_referral_and_clears_cookie(client, db, make_user, make_ambassador, auth_headers):
    ambassador = make_ambassador(code="MARIA10")
    buyer = make_user()
    client.post("/api/v1/referral/click", json={"referral_code": "MARIA10"})

    r = _checkout(client, auth_headers(buyer))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["referral_code"] == "MARIA10"
    assert data["subscription"]["status"] == "pending"
    assert Decimal(data["subscription"]["amount"]) == Decimal("99.90")
    assert f"{settings.REFERRAL_COOKIE_NAME}=" in r.headers["set-cookie"]

    referral = db.exec(select(AmbassadorReferral)).one()
    assert referral.ambassador_id == ambassador.id
    assert referral.referred_user_id == buyer.id
    assert referral.sale_amount == Decimal("99.90")

    notification = db.exec(select(AmbassadorNotification)).one()
    assert notification.type == NotificationType.payment_registered
    assert notification.ambassador_id == ambassador.id

    # Attribution is consumed by the order.
    assert client.get("/api/v1/referral").json()["data"]["referral_code"] is None


def test_checkout_without_referral(client, db, make_user, auth_headers):
    r = _checkout(client, auth_headers(make_user()))
    assert r.status_code == 200
    assert r.json()["data"]["referral_code"] is None
    assert db.exec(select(AmbassadorReferral)).all() == []


def test_checkout_ignores_inactive_ambassador(client, db, make_user, make_ambassador, auth_headers):
    make_ambassador(code="PAUSED", active=False)
    client.post("/api/v1/referral/click", json={"referral_code": "PAUSED"})

    r = _checkout(client, auth_headers(make_user()))
    assert r.json()["data"]["referral_code"] is None
    assert db.exec(select(AmbassadorReferral)).all() == []
    # Attribution stays for a later order.
    assert client.get("/api/v1/referral").json()["data"]["referral_code"] == "PAUSED"


def test_checkout_ignores_self_referral(client, db, make_user, make_ambassador, auth_headers):
    owner = make_user()
    make_ambassador(code="SELF01", user=owner)
    client.post("/api/v1/referral/click", json={"referral_code": "SELF01"})

    r = _checkout(client, auth_headers(owner))
    assert r.json()["data"]["referral_code"] is None
    assert db.exec(select(AmbassadorReferral)).all() == []


def test_checkout_same_payment_is_reused(client, db, make_user, auth_headers):
    buyer = make_user()
    headers = auth_headers(buyer)
    first = _checkout(client, headers).json()["data"]["subscription"]["id"]
    second = _checkout(client, headers).json()["data"]["subscription"]["id"]
    assert first == second
    assert len(db.exec(select(Subscription)).all()) == 1

    r = _checkout(client, auth_headers(make_user()))
    assert r.status_code == 409
    assert r.json()["code"] == 409001


def test_checkout_requires_auth(client):
    r = client.post(
        "/api/v1/subscription/checkout",
        json={"plan_name": "Anual", "amount": "10", "external_payment_id": "pay_x"},
    )
    assert r.status_code in (401, 403)


def test_checkout_validation(client, make_user, auth_headers):
    r = client.post(
        "/api/v1/subscription/checkout",
        headers=auth_headers(make_user()),
        json={"plan_name": "Anual", "amount": "-1", "external_payment_id": "pay_x"},
    )
    assert r.status_code == 422
    assert r.json()["code"] == 422000


def test_subscription_status(client, make_user, make_business, auth_headers):
    buyer = make_user()
    make_business(buyer)
    headers = auth_headers(buyer)

    r = client.get("/api/v1/subscription/status", headers=headers)
    data = r.json()["data"]
    assert data["subscription"] is None
    assert data["businesses"][0]["subscription_active"] is False

    _checkout(client, headers, payment_id="pay_status")
    data = client.get("/api/v1/subscription/status", headers=headers).json()["data"]
    assert data["subscription"]["external_payment_id"] == "pay_status"
