"""
支付 webhook 路由模块

支付平台（Asaas）在付款事件发生时回调此接口。响应体格式由支付平台约定：
- 200 {"success": true, ...}: 已处理或已忽略（非激活事件、订阅已取消或已过期）
- 404 "Subscription not found": 付款找不到对应订阅
- 500 {"success": false, "error": "..."}: 未预期的错误
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Header, Request, Response
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import ValidationError
from sqlmodel import Session

from app.api.deps import SessionDep
from app.api.errors import AppError
from app.api.schemas import PaymentWebhook
from app.core.config import settings
from app.services import activation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": (
        "authorization, x-client-info, apikey, content-type, asaas-access-token"
    ),
    "Access-Control-Allow-Methods": "POST, OPTIONS",
}

# 500 响应里错误信息的最大长度
MAX_ERROR_LENGTH = 200


def _error_response(status_code: int, code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"code": code, "message": message, "data": None},
        headers=CORS_HEADERS,
    )


@router.options("/webhook")
def webhook_preflight() -> Response:
    """CORS 预检请求"""
    return Response(status_code=200, headers=CORS_HEADERS)


def _process(session: Session, body: PaymentWebhook, payload: dict[str, Any]) -> Response:
    if not activation.is_activating_event(body.event):
        logger.info("Payment webhook ignored: event=%s", body.event)
        return JSONResponse(
            content={"success": True, "ignored": True, "event": body.event},
            headers=CORS_HEADERS,
        )

    payment_id = body.payment_id
    if not payment_id:
        return _error_response(400, 400002, "Missing payment id")

    try:
        result = activation.activate_subscription(
            session=session, event_type=body.event, payment_id=payment_id, payload=payload
        )
    except AppError as exc:
        if exc.status_code == 404:
            return PlainTextResponse(exc.message, status_code=404, headers=CORS_HEADERS)
        return _error_response(exc.status_code, exc.code, exc.message)
    except Exception as exc:
        session.rollback()
        logger.exception("Payment webhook failed: event=%s payment=%s", body.event, payment_id)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(exc)[:MAX_ERROR_LENGTH]},
            headers=CORS_HEADERS,
        )

    if result.skipped_status is not None:
        return JSONResponse(
            content={
                "success": True,
                "ignored": True,
                "subscriptionId": result.subscription_id,
                "status": result.skipped_status,
            },
            headers=CORS_HEADERS,
        )

    return JSONResponse(
        content={
            "success": True,
            "message": "Payment processed successfully",
            "subscriptionId": result.subscription_id,
            "businessesActivated": result.businesses_activated,
            "alreadyActive": result.already_active,
            "resourcesSynced": result.resources_synced,
        },
        headers=CORS_HEADERS,
    )


@router.post("/webhook")
async def webhook(
    request: Request,
    session: SessionDep,
    asaas_access_token: str | None = Header(default=None),
) -> Response:
    """
    支付平台 webhook

    请求路径: POST /api/v1/payments/webhook
    请求体: {"event": "PAYMENT_CONFIRMED", "payment": {"id": "pay_123", ...}}

    请求体在这里手动解析：非 JSON 或结构不对都返回 400，而不是框架默认的 422。
    """
    token = settings.PAYMENT_WEBHOOK_TOKEN
    if token and asaas_access_token != token:
        logger.warning("Payment webhook rejected: bad access token")
        return _error_response(401, 401001, "Unauthorized")

    try:
        payload = await request.json()
    except ValueError:
        return _error_response(400, 400001, "Invalid webhook payload")
    if not isinstance(payload, dict):
        return _error_response(400, 400001, "Invalid webhook payload")

    try:
        body = PaymentWebhook.model_validate(payload)
    except ValidationError:
        return _error_response(400, 400001, "Invalid webhook payload")

    logger.info("Payment webhook received: event=%s payment=%s", body.event, body.payment_id)
    # 数据库操作是同步的，放到线程池里执行
    return await run_in_threadpool(_process, session, body, payload)
