from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, delete

from app import crud
from app.api.deps import get_db
from app.core import security
from app.enums import SubscriptionStatus
from app.main import app
from app.models import (
    Ambassador,
    AmbassadorNotification,
    AmbassadorPayout,
    AmbassadorReferral,
    Business,
    Commission,
    PaymentEvent,
    ReferralClick,
    Subscription,
    User,
    utc_now,
)


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="function")
def db(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session
        session.rollback()
        # Clean tables after each test (children first).
        session.exec(delete(PaymentEvent))
        session.exec(delete(AmbassadorNotification))
        session.exec(delete(Commission))
        session.exec(delete(AmbassadorPayout))
        session.exec(delete(AmbassadorReferral))
        session.exec(delete(ReferralClick))
        session.exec(delete(Ambassador))
        session.exec(delete(Business))
        session.exec(delete(Subscription))
        session.exec(delete(User))
        session.commit()


@pytest.fixture(scope="function")
def client(engine, db) -> Generator[TestClient, None, None]:
    def _override_get_db() -> Generator[Session, None, None]:
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make_user(db) -> Callable[..., User]:
    counter = iter(range(1, 10_000))

    def _make(email: str | None = None, is_admin: bool = False) -> User:
        return crud.create_user(
            session=db,
            email=email or f"user{next(counter)}@example.com",
            is_admin=is_admin,
        )

    return _make


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        token = security.create_access_token(user.id, expires_delta=timedelta(minutes=30))
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def make_ambassador(db, make_user) -> Callable[..., Ambassador]:
    def _make(
        code: str = "MARIA10",
        rate: Decimal | None = None,
        active: bool = True,
        user: User | None = None,
    ) -> Ambassador:
        ambassador = crud.ambassador.create(
            session=db,
            user_id=(user or make_user()).id,
            referral_code=code,
            commission_rate=rate,
        )
        if not active:
            ambassador = crud.ambassador.set_active(
                session=db, ambassador_id=ambassador.id, active=False
            )
        return ambassador

    return _make


@pytest.fixture
def make_subscription(db) -> Callable[..., Subscription]:
    def _make(
        user: User,
        payment_id: str = "pay_123",
        amount: Decimal = Decimal("99.90"),
        status: SubscriptionStatus = SubscriptionStatus.pending,
        expires_in: timedelta = timedelta(days=365),
        plan_name: str = "Anual",
    ) -> Subscription:
        subscription = Subscription(
            user_id=user.id,
            external_payment_id=payment_id,
            plan_name=plan_name,
            amount=amount,
            status=status,
            expires_at=utc_now() + expires_in,
        )
        db.add(subscription)
        db.commit()
        db.refresh(subscription)
        return subscription

    return _make


@pytest.fixture
def make_business(db) -> Callable[..., Business]:
    def _make(owner: User, name: str = "Padaria Central") -> Business:
        business = Business(owner_id=owner.id, name=name)
        db.add(business)
        db.commit()
        db.refresh(business)
        return business

    return _make
