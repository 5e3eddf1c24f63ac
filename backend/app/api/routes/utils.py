"""
工具路由模块

健康检查：进程存活 + 数据库可用。
"""
import logging

from fastapi import APIRouter
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from app.api.deps import SessionDep
from app.api.errors import AppError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/utils", tags=["utils"])


@router.get("/health-check/")
def health_check(session: SessionDep) -> bool:
    """
    健康检查端点

    请求路径: GET /api/v1/utils/health-check/

    数据库不可用时返回 503，负载均衡器会把实例摘掉。
    """
    try:
        session.exec(select(1))
    except SQLAlchemyError as exc:
        logger.warning("Health check failed: %s", exc)
        raise AppError(code=503001, message="Database unavailable", status_code=503)
    return True
