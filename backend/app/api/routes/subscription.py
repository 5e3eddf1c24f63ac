"""
订阅路由模块

- checkout：创建待支付订阅，并把浏览器上的推荐归因记到订单上
- 查询当前订阅和商家状态
"""
from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter

from app import crud
from app.api.deps import CurrentUser, SessionDep, TrackerDep
from app.api.schemas import (
    ApiEnvelope,
    BusinessData,
    CheckoutData,
    CheckoutRequest,
    SubscriptionData,
    SubscriptionStatusData,
)
from app.core.config import settings
from app.models import Subscription, utc_now
from app.services import ledger

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/subscription", tags=["subscription"])


def _subscription_data(subscription: Subscription) -> SubscriptionData:
    return SubscriptionData.model_validate(subscription, from_attributes=True)


@router.post("/checkout", response_model=ApiEnvelope)
def checkout(
    session: SessionDep,
    current_user: CurrentUser,
    tracker: TrackerDep,
    body: CheckoutRequest,
) -> ApiEnvelope:
    """
    checkout

    请求路径: POST /api/v1/subscription/checkout

    归因规则：
    - 推荐码属于其他用户的启用中大使：写入推荐成交记录、通知大使，然后清除归因
    - 推荐码不存在、大使已停用或是自己的推荐码：不记归因，浏览器上的归因保留
    """
    period_days = body.period_days or settings.SUBSCRIPTION_PERIOD_DAYS
    subscription = crud.subscription.create_pending(
        session=session,
        user_id=current_user.id,
        external_payment_id=body.external_payment_id,
        plan_name=body.plan_name,
        amount=body.amount,
        expires_at=utc_now() + timedelta(days=period_days),
    )

    stamped_code: str | None = None
    code = tracker.get_referral_code()
    if code:
        ambassador = crud.referral.get_ambassador_by_code(session=session, code=code)
        if ambassador is None or not ambassador.active:
            logger.info("Referral code %s ignored at checkout: no active ambassador", code)
        elif ambassador.user_id == current_user.id:
            logger.info("Self referral ignored at checkout: user=%s", current_user.id)
        else:
            ledger.register_conversion(
                session=session, ambassador=ambassador, subscription=subscription
            )
            stamped_code = ambassador.referral_code

    session.commit()
    session.refresh(subscription)

    if stamped_code:
        tracker.clear_referral_code()
        logger.info(
            "Subscription %s attributed to referral code %s", subscription.id, stamped_code
        )

    return ApiEnvelope(
        data=CheckoutData(
            subscription=_subscription_data(subscription), referral_code=stamped_code
        )
    )


@router.get("/status", response_model=ApiEnvelope)
def status(session: SessionDep, current_user: CurrentUser) -> ApiEnvelope:
    """当前用户最近一次订阅，以及商家上同步的订阅状态"""
    subscription = crud.subscription.get_latest_for_user(session=session, user_id=current_user.id)
    businesses = crud.subscription.list_businesses(session=session, owner_id=current_user.id)
    return ApiEnvelope(
        data=SubscriptionStatusData(
            subscription=_subscription_data(subscription) if subscription else None,
            businesses=[BusinessData.model_validate(b, from_attributes=True) for b in businesses],
        )
    )
