"""
FastAPI 应用主入口

- 创建 FastAPI 应用实例
- 配置 Sentry、CORS
- 注册全局异常处理器（统一响应格式 {"code", "message", "data"}）
- 注册 API 路由

运行方式：
    fastapi dev app/main.py
    python -m app.worker.scheduler  # 对账定时任务
"""
import logging
from typing import Any

import sentry_sdk
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute

from app.api.errors import AppError
from app.api.main import api_router
from app.core.config import settings

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def custom_generate_unique_id(route: APIRoute) -> str:
    """OpenAPI 操作 ID：{tag}-{route_name}，例如 "payments-webhook" """
    return f"{route.tags[0]}-{route.name}"


if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":  # pragma: no cover
    sentry_sdk.init(dsn=str(settings.SENTRY_DSN), enable_tracing=True)

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    generate_unique_id_function=custom_generate_unique_id,
)


@app.exception_handler(AppError)
async def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
    """业务异常 -> 统一错误响应"""
    if exc.status_code >= 500:
        logger.error("AppError %s: %s", exc.code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "message": exc.message, "data": None},
    )


@app.exception_handler(HTTPException)
async def http_error_handler(_: Request, exc: HTTPException) -> JSONResponse:
    """
    HTTPException -> 统一错误响应

    detail 为 {"code", "message"} 字典时直接使用，否则错误码取 状态码 * 1000。
    """
    payload: dict[str, Any]
    if isinstance(exc.detail, dict) and {"code", "message"} <= set(exc.detail.keys()):
        payload = {"code": exc.detail.get("code"), "message": exc.detail.get("message")}
    else:
        payload = {"code": exc.status_code * 1000, "message": str(exc.detail)}
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": payload["code"], "message": payload["message"], "data": None},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """请求参数校验失败（422），data.errors 为详细错误列表"""
    return JSONResponse(
        status_code=422,
        content={
            "code": 422000,
            "message": "Validation error",
            "data": {"errors": jsonable_errors(exc)},
        },
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    # ctx 里可能带异常对象（如 Decimal 校验失败），转成字符串才能序列化
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {k: str(v) for k, v in error["ctx"].items()}
        errors.append(error)
    return errors


# 支付 webhook 的 CORS 头由路由自己返回，这里只配置前端站点
if settings.all_cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.all_cors_origins,
        allow_credentials=True,  # 推荐归因依赖 Cookie
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(api_router, prefix=settings.API_V1_STR)
