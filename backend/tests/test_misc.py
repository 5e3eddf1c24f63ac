from __future__ import annotations

import asyncio
import time
from datetime import timedelta

import jwt
import pytest
import redis
from fastapi import HTTPException
from sqlmodel import select

from app.api import deps
from app.core import security
from app.core.config import Settings, parse_cors, settings
from app.core.redis import acquire_lock, release_lock
from app.models import User


def test_health_check(client):
    r = client.get("/api/v1/utils/health-check/")
    assert r.status_code == 200
    assert r.json() is True


def test_http_exception_handler_dict_branch():
    from app import main as app_main

    exc = HTTPException(status_code=418, detail={"code": 418001, "message": "teapot"})
    resp = asyncio.run(app_main.http_error_handler(None, exc))  # type: ignore[arg-type]
    assert resp.status_code == 418
    assert b"418001" in resp.body


def test_invalid_token_paths(client, make_user):
    url = "/api/v1/subscription/status"

    r = client.get(url, headers={"Authorization": "Bearer not-a-jwt"})
    assert r.status_code == 401

    # Valid JWT but missing sub
    token = jwt.encode({"exp": int(time.time()) + 60}, settings.SECRET_KEY, algorithm="HS256")
    r = client.get(url, headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401

    # Valid JWT but user doesn't exist
    token = jwt.encode({"sub": "nobody", "exp": int(time.time()) + 60}, settings.SECRET_KEY, algorithm="HS256")
    r = client.get(url, headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401

    # Expired
    user = make_user()
    token = jwt.encode({"sub": user.id, "exp": int(time.time()) - 60}, settings.SECRET_KEY, algorithm="HS256")
    r = client.get(url, headers={"Authorization": f"Bearer {token}"})
    assert r.status_code == 401



def test_issued_token_matches_auth_service_format():
    token = security.create_access_token("user-1", expires_delta=timedelta(minutes=5))
    payload = security.decode_access_token(token)
    assert payload["sub"] == "user-1"

    expired = security.create_access_token("user-1", expires_delta=timedelta(seconds=-1))
    with pytest.raises(jwt.ExpiredSignatureError):
        security.decode_access_token(expired)

def test_get_db_generator_uses_engine_override(engine, monkeypatch):
    monkeypatch.setattr(deps, "engine", engine)
    gen = deps.get_db()
    session = next(gen)
    session.exec(select(1))
    gen.close()


def test_settings_validation_paths():
    assert parse_cors("http://a.com, http://b.com") == ["http://a.com", "http://b.com"]
    assert parse_cors(["a"]) == ["a"]
    with pytest.raises(ValueError):
        parse_cors(123)

    # Non-local env should reject default secrets.
    with pytest.raises(ValueError):
        Settings(
            ENVIRONMENT="production",
            SECRET_KEY="not-changethis",
            POSTGRES_PASSWORD="not-changethis",
            PAYMENT_WEBHOOK_TOKEN="changethis",
        )


class _BrokenRedis:
    def ping(self):
        raise redis.ConnectionError("refused")

    def set(self, *args, **kwargs):
        raise redis.ConnectionError("refused")

    def eval(self, *args, **kwargs):
        raise redis.ConnectionError("refused")


def test_redis_lock_helpers_degrade():
    client = _BrokenRedis()
    assert acquire_lock(client, "k", "v", expire_seconds=10) is False  # type: ignore[arg-type]
    assert release_lock(client, "k", "v") is False  # type: ignore[arg-type]


def test_prestart_and_seed_scripts(engine, db, monkeypatch):
    from app import backend_pre_start, initial_data

    monkeypatch.setattr(backend_pre_start, "engine", engine)
    monkeypatch.setattr(backend_pre_start, "get_redis", lambda: _BrokenRedis())
    monkeypatch.setattr(initial_data, "engine", engine)

    backend_pre_start.init(engine)
    backend_pre_start.main()
    assert backend_pre_start.check_redis(_BrokenRedis()) is False  # type: ignore[arg-type]

    monkeypatch.setattr(settings, "FIRST_ADMIN_EMAIL", None)
    initial_data.main()
    assert db.exec(select(User)).all() == []

    monkeypatch.setattr(settings, "FIRST_ADMIN_EMAIL", "admin@example.com")
    initial_data.main()
    initial_data.main()
    admins = db.exec(select(User)).all()
    assert len(admins) == 1
    assert admins[0].is_admin is True
