"""
大使路由模块

管理员：
- 大使列表、创建、启用/停用、修改佣金比例
- 查询大使佣金、标记佣金已支付
- 结算待支付佣金（打款）、查询打款记录
- 汇总统计

大使本人：
- 个人看板（资料 + 统计）、佣金和打款记录
"""
from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import APIRouter

from app import crud
from app.api.deps import AdminUser, CurrentAmbassador, SessionDep
from app.api.errors import AppError, invalid_referral_code
from app.api.schemas import (
    AdminStatsData,
    AmbassadorCreateRequest,
    AmbassadorDashboardData,
    AmbassadorData,
    AmbassadorStatsData,
    AmbassadorStatusUpdateRequest,
    ApiEnvelope,
    CommissionData,
    CommissionRateUpdateRequest,
    PayoutCreateRequest,
    PayoutData,
    PayoutDetailData,
)
from app.models import Ambassador, AmbassadorPayout, Commission, User
from app.services import ledger
from app.services.attribution import normalize_code

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ambassadors", tags=["ambassadors"])


def _ambassador_data(ambassador: Ambassador) -> AmbassadorData:
    return AmbassadorData.model_validate(ambassador, from_attributes=True)


def _commission_data(commission: Commission) -> CommissionData:
    return CommissionData.model_validate(commission, from_attributes=True)


def _payout_data(payout: AmbassadorPayout) -> PayoutData:
    return PayoutData.model_validate(payout, from_attributes=True)


@router.get("", response_model=ApiEnvelope)
def list_ambassadors(session: SessionDep, _: AdminUser) -> ApiEnvelope:
    """大使列表（管理员）"""
    ambassadors = crud.ambassador.list_all(session=session)
    return ApiEnvelope(data=[_ambassador_data(a) for a in ambassadors])


@router.post("", response_model=ApiEnvelope)
def create_ambassador(
    session: SessionDep, admin: AdminUser, body: AmbassadorCreateRequest
) -> ApiEnvelope:
    """
    创建大使（管理员）

    请求路径: POST /api/v1/ambassadors
    请求体: {"user_id": "...", "referral_code": "MARIA10", "commission_rate": "20"}
    """
    code = normalize_code(body.referral_code)
    if code is None:
        raise invalid_referral_code()
    if session.get(User, body.user_id) is None:
        raise AppError(code=404005, message="User not found", status_code=404)
    rate = ledger.validate_rate(body.commission_rate) if body.commission_rate is not None else None

    ambassador = crud.ambassador.create(
        session=session, user_id=body.user_id, referral_code=code, commission_rate=rate
    )
    logger.info("Ambassador %s created by admin %s (code=%s)", ambassador.id, admin.id, code)
    return ApiEnvelope(data=_ambassador_data(ambassador))


@router.get("/me", response_model=ApiEnvelope)
def my_dashboard(session: SessionDep, ambassador: CurrentAmbassador) -> ApiEnvelope:
    """大使个人看板"""
    stats = ledger.ambassador_stats(session=session, ambassador=ambassador)
    return ApiEnvelope(
        data=AmbassadorDashboardData(
            ambassador=_ambassador_data(ambassador),
            stats=AmbassadorStatsData(**asdict(stats)),
        )
    )


@router.get("/me/commissions", response_model=ApiEnvelope)
def my_commissions(session: SessionDep, ambassador: CurrentAmbassador) -> ApiEnvelope:
    commissions = crud.ambassador.list_commissions(session=session, ambassador_id=ambassador.id)
    return ApiEnvelope(data=[_commission_data(c) for c in commissions])


@router.get("/me/payouts", response_model=ApiEnvelope)
def my_payouts(session: SessionDep, ambassador: CurrentAmbassador) -> ApiEnvelope:
    payouts = crud.payout.list_all(session=session, ambassador_id=ambassador.id)
    return ApiEnvelope(data=[_payout_data(p) for p in payouts])


@router.get("/payouts", response_model=ApiEnvelope)
def list_payouts(
    session: SessionDep, _: AdminUser, ambassador_id: str | None = None
) -> ApiEnvelope:
    """打款记录（管理员），可按大使筛选"""
    payouts = crud.payout.list_all(session=session, ambassador_id=ambassador_id)
    return ApiEnvelope(data=[_payout_data(p) for p in payouts])


@router.get("/payouts/{payout_id}", response_model=ApiEnvelope)
def get_payout(session: SessionDep, _: AdminUser, payout_id: str) -> ApiEnvelope:
    """打款详情（管理员），包含本次结算的佣金"""
    payout = crud.payout.get(session=session, payout_id=payout_id)
    commissions = crud.payout.list_commissions(session=session, payout_id=payout.id)
    return ApiEnvelope(
        data=PayoutDetailData(
            payout=_payout_data(payout),
            commissions=[_commission_data(c) for c in commissions],
        )
    )


@router.get("/stats", response_model=ApiEnvelope)
def stats(session: SessionDep, _: AdminUser) -> ApiEnvelope:
    """大使汇总统计（管理员）"""
    return ApiEnvelope(data=AdminStatsData(**asdict(ledger.admin_stats(session=session))))


@router.patch("/{ambassador_id}/commission-rate", response_model=ApiEnvelope)
def update_commission_rate(
    session: SessionDep,
    admin: AdminUser,
    ambassador_id: str,
    body: CommissionRateUpdateRequest,
) -> ApiEnvelope:
    """
    修改佣金比例（管理员）

    只影响之后生成的佣金，已有佣金保留生成时的比例。
    """
    ambassador = ledger.update_commission_rate(
        session=session, ambassador_id=ambassador_id, rate=body.rate
    )
    logger.info("Admin %s changed commission rate of %s", admin.id, ambassador_id)
    return ApiEnvelope(data=_ambassador_data(ambassador))


@router.patch("/{ambassador_id}/status", response_model=ApiEnvelope)
def update_status(
    session: SessionDep,
    _: AdminUser,
    ambassador_id: str,
    body: AmbassadorStatusUpdateRequest,
) -> ApiEnvelope:
    """启用/停用大使（停用后新订单不再归因给该大使）"""
    ambassador = crud.ambassador.set_active(
        session=session, ambassador_id=ambassador_id, active=body.active
    )
    return ApiEnvelope(data=_ambassador_data(ambassador))


@router.get("/{ambassador_id}/commissions", response_model=ApiEnvelope)
def list_commissions(session: SessionDep, _: AdminUser, ambassador_id: str) -> ApiEnvelope:
    crud.ambassador.get(session=session, ambassador_id=ambassador_id)
    commissions = crud.ambassador.list_commissions(session=session, ambassador_id=ambassador_id)
    return ApiEnvelope(data=[_commission_data(c) for c in commissions])


@router.post("/commissions/{commission_id}/pay", response_model=ApiEnvelope)
def pay_commission(session: SessionDep, admin: AdminUser, commission_id: str) -> ApiEnvelope:
    """标记佣金已支付（管理员），重复调用结果不变"""
    commission = ledger.mark_commission_paid(session=session, commission_id=commission_id)
    logger.info("Commission %s marked paid by admin %s", commission_id, admin.id)
    return ApiEnvelope(data=_commission_data(commission))


@router.post("/{ambassador_id}/payouts", response_model=ApiEnvelope)
def create_payout(
    session: SessionDep,
    admin: AdminUser,
    ambassador_id: str,
    body: PayoutCreateRequest,
) -> ApiEnvelope:
    """
    结算大使所有待支付佣金（管理员）

    请求路径: POST /api/v1/ambassadors/{ambassador_id}/payouts
    请求体: {"reference_period": "2026-10", "net_amount": "29.00", "payment_method": "pix"}
    """
    payout = ledger.create_payout(
        session=session,
        ambassador_id=ambassador_id,
        reference_period=body.reference_period,
        net_amount=body.net_amount,
        payment_method=body.payment_method.value if body.payment_method else None,
        notes=body.notes,
    )
    logger.info("Payout %s created by admin %s", payout.id, admin.id)
    return ApiEnvelope(data=_payout_data(payout))
