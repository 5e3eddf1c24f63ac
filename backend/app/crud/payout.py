"""大使打款 CRUD 操作"""
from sqlmodel import Session, col, select

from app.api.errors import AppError
from app.enums import CommissionStatus
from app.models import AmbassadorPayout, Commission


def get(*, session: Session, payout_id: str) -> AmbassadorPayout:
    payout = session.get(AmbassadorPayout, payout_id)
    if not payout:
        raise AppError(code=404006, message="Payout not found", status_code=404)
    return payout


def list_all(*, session: Session, ambassador_id: str | None = None) -> list[AmbassadorPayout]:
    """打款记录，最新的在前；指定 ambassador_id 时只查该大使"""
    statement = select(AmbassadorPayout)
    if ambassador_id:
        statement = statement.where(AmbassadorPayout.ambassador_id == ambassador_id)
    statement = statement.order_by(col(AmbassadorPayout.created_at).desc())
    return list(session.exec(statement).all())


def list_commissions(*, session: Session, payout_id: str) -> list[Commission]:
    statement = (
        select(Commission)
        .where(Commission.payout_id == payout_id)
        .order_by(col(Commission.created_at))
    )
    return list(session.exec(statement).all())


def list_unsettled_commissions(*, session: Session, ambassador_id: str) -> list[Commission]:
    """大使所有待支付且未关联打款的佣金"""
    statement = (
        select(Commission)
        .where(Commission.ambassador_id == ambassador_id)
        .where(Commission.status == CommissionStatus.pending)
        .where(col(Commission.payout_id).is_(None))
        .order_by(col(Commission.created_at))
    )
    return list(session.exec(statement).all())
