from __future__ import annotations

from sqlalchemy.exc import OperationalError

from app import crud
from app.core.config import settings
from app.enums import NotificationType

BASE = "/api/v1/notifications"


def _notify(db, ambassador, title: str = "Hello") -> str:
    notification = crud.notification.add(
        session=db,
        ambassador_id=ambassador.id,
        type=NotificationType.payment_registered,
        title=title,
        message="An order was placed with your code.",
        extra={"subscription_id": "sub_1"},
    )
    db.commit()
    return notification.id


def test_list_and_unread_count(client, db, make_user, make_ambassador, auth_headers):
    owner = make_user()
    ambassador = make_ambassador(user=owner)
    _notify(db, ambassador, "first")
    _notify(db, ambassador, "second")
    headers = auth_headers(owner)

    r = client.get(BASE, headers=headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["count"] == 2
    assert data["data"][0]["metadata"] == {"subscription_id": "sub_1"}
    assert data["data"][0]["read"] is False

    r = client.get(f"{BASE}/unread-count", headers=headers)
    assert r.json()["data"] == {
        "count": 2,
        "poll_interval_seconds": settings.NOTIFICATION_POLL_INTERVAL_SECONDS,
    }


def test_list_is_limited(client, db, make_user, make_ambassador, auth_headers, monkeypatch):
    monkeypatch.setattr(settings, "NOTIFICATIONS_PAGE_LIMIT", 3)
    owner = make_user()
    ambassador = make_ambassador(user=owner)
    for i in range(5):
        _notify(db, ambassador, f"n{i}")

    data = client.get(BASE, headers=auth_headers(owner)).json()["data"]
    assert data["count"] == 3


def test_mark_read_is_monotonic(client, db, make_user, make_ambassador, auth_headers):
    owner = make_user()
    ambassador = make_ambassador(user=owner)
    notification_id = _notify(db, ambassador)
    headers = auth_headers(owner)

    r = client.post(f"{BASE}/{notification_id}/read", headers=headers)
    assert r.json()["data"] == {"updated": True}
    first_read_at = client.get(BASE, headers=headers).json()["data"]["data"][0]["read_at"]
    assert first_read_at is not None

    r = client.post(f"{BASE}/{notification_id}/read", headers=headers)
    assert r.json()["data"] == {"updated": False}
    item = client.get(BASE, headers=headers).json()["data"]["data"][0]
    assert item["read"] is True
    assert item["read_at"] == first_read_at

    assert client.get(f"{BASE}/unread-count", headers=headers).json()["data"]["count"] == 0


def test_mark_read_of_other_ambassador(client, db, make_user, make_ambassador, auth_headers):
    owner = make_user()
    make_ambassador(code="MINE01", user=owner)
    other = make_ambassador(code="OTHER1")
    notification_id = _notify(db, other)

    r = client.post(f"{BASE}/{notification_id}/read", headers=auth_headers(owner))
    assert r.status_code == 404
    assert r.json()["code"] == 404004


def test_mark_all_read(client, db, make_user, make_ambassador, auth_headers):
    owner = make_user()
    ambassador = make_ambassador(user=owner)
    for i in range(3):
        _notify(db, ambassador, f"n{i}")
    headers = auth_headers(owner)

    assert client.post(f"{BASE}/read-all", headers=headers).json()["data"] == {"updated": 3}
    assert client.post(f"{BASE}/read-all", headers=headers).json()["data"] == {"updated": 0}


def test_mark_all_read_failure_is_soft(client, make_user, make_ambassador, auth_headers, monkeypatch):
    owner = make_user()
    make_ambassador(user=owner)

    def _fail(**kwargs):
        raise OperationalError("UPDATE ambassador_notifications", {}, Exception("db down"))

    monkeypatch.setattr("app.crud.notification.mark_all_read", _fail)
    r = client.post(f"{BASE}/read-all", headers=auth_headers(owner))
    assert r.status_code == 200
    assert r.json()["data"] == {"updated": 0}


def test_notifications_require_ambassador(client, make_user, auth_headers):
    r = client.get(f"{BASE}/unread-count", headers=auth_headers(make_user()))
    assert r.status_code == 403
    assert r.json()["code"] == 403002
