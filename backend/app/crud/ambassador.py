"""大使、佣金 CRUD 操作"""
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, select

from app.api.errors import AppError
from app.core.config import settings
from app.models import Ambassador, Commission, utc_now


def get(*, session: Session, ambassador_id: str) -> Ambassador:
    """根据 ID 查询大使，不存在时报 404"""
    ambassador = session.get(Ambassador, ambassador_id)
    if not ambassador:
        raise AppError(code=404002, message="Ambassador not found", status_code=404)
    return ambassador


def get_by_user_id(*, session: Session, user_id: str) -> Ambassador | None:
    statement = select(Ambassador).where(Ambassador.user_id == user_id)
    return session.exec(statement).first()


def list_all(*, session: Session) -> list[Ambassador]:
    statement = select(Ambassador).order_by(col(Ambassador.created_at).desc())
    return list(session.exec(statement).all())


def create(
    *,
    session: Session,
    user_id: str,
    referral_code: str,
    commission_rate: Decimal | None = None,
) -> Ambassador:
    """创建大使，未指定佣金比例时使用平台默认值"""
    ambassador = Ambassador(
        user_id=user_id,
        referral_code=referral_code,
        commission_rate=commission_rate
        if commission_rate is not None
        else settings.DEFAULT_COMMISSION_RATE,
    )
    session.add(ambassador)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise AppError(
            code=409002, message="Referral code or user already registered", status_code=409
        )
    session.refresh(ambassador)
    return ambassador


def set_active(*, session: Session, ambassador_id: str, active: bool) -> Ambassador:
    ambassador = get(session=session, ambassador_id=ambassador_id)
    ambassador.active = active
    ambassador.updated_at = utc_now()
    session.add(ambassador)
    session.commit()
    session.refresh(ambassador)
    return ambassador


def get_commission(*, session: Session, commission_id: str) -> Commission:
    commission = session.get(Commission, commission_id)
    if not commission:
        raise AppError(code=404003, message="Commission not found", status_code=404)
    return commission


def list_commissions(*, session: Session, ambassador_id: str) -> list[Commission]:
    statement = (
        select(Commission)
        .where(Commission.ambassador_id == ambassador_id)
        .order_by(col(Commission.created_at).desc())
    )
    return list(session.exec(statement).all())
