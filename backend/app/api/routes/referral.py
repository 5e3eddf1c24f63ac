"""
推荐归因路由模块

- 记录推荐链接点击并写入归因 Cookie（first-click）
- 推荐链接跳转
- 查询、清除当前归因
"""
from __future__ import annotations

from fastapi import APIRouter, Query, Request
from fastapi.responses import RedirectResponse

from app.api.deps import SessionDep, TrackerDep, click_recorder
from app.api.errors import invalid_referral_code
from app.api.schemas import ApiEnvelope, ReferralClickRequest, ReferralCodeData
from app.core.config import settings
from app.services.attribution import (
    CookieAttributionStore,
    ReferralTracker,
    UtmParams,
    normalize_code,
)

router = APIRouter(prefix="/referral", tags=["referral"])


@router.post("/click", response_model=ApiEnvelope)
def track_click(tracker: TrackerDep, body: ReferralClickRequest) -> ApiEnvelope:
    """
    记录推荐链接点击

    点击总会被记录（用于大使的点击统计）；归因只在浏览器没有有效归因时写入。

    请求路径: POST /api/v1/referral/click

    Returns:
        ApiEnvelope: 当前生效的推荐码（可能是更早的推荐码）
    """
    code = normalize_code(body.referral_code)
    if code is None:
        raise invalid_referral_code()
    current = tracker.track_click(
        code,
        UtmParams(source=body.utm_source, medium=body.utm_medium, campaign=body.utm_campaign),
    )
    return ApiEnvelope(data=ReferralCodeData(referral_code=current))


@router.get("/go/{code}")
def follow_link(
    session: SessionDep,
    request: Request,
    code: str,
    utm_source: str | None = Query(default=None, max_length=128),
    utm_medium: str | None = Query(default=None, max_length=128),
    utm_campaign: str | None = Query(default=None, max_length=128),
) -> RedirectResponse:
    """
    推荐链接入口：记录点击、写入归因后跳转到前端站点

    请求路径: GET /api/v1/referral/go/{code}?utm_source=...
    """
    normalized = normalize_code(code)
    if normalized is None:
        raise invalid_referral_code()

    response = RedirectResponse(url=settings.FRONTEND_URL, status_code=307)
    # Cookies must go on the redirect itself, not on the injected Response.
    tracker = ReferralTracker(CookieAttributionStore(request, response), record_click=click_recorder(session))
    tracker.track_click(
        normalized, UtmParams(source=utm_source, medium=utm_medium, campaign=utm_campaign)
    )
    return response


@router.get("", response_model=ApiEnvelope)
def current_code(tracker: TrackerDep) -> ApiEnvelope:
    """查询当前浏览器生效的推荐码"""
    return ApiEnvelope(data=ReferralCodeData(referral_code=tracker.get_referral_code()))


@router.delete("", response_model=ApiEnvelope)
def clear_code(tracker: TrackerDep) -> ApiEnvelope:
    """清除当前浏览器的推荐归因"""
    tracker.clear_referral_code()
    return ApiEnvelope(data=ReferralCodeData(referral_code=None))
