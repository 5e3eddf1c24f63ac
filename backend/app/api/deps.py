"""
FastAPI 依赖注入模块

提供可复用的依赖项，用于路由处理函数中。

关键概念：
- Depends: FastAPI 的依赖注入
- Generator: 用于创建需要清理的资源（如数据库会话）
- HTTPBearer: 从请求头 Authorization: Bearer <token> 中提取 token
"""
from collections.abc import Generator
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jwt.exceptions import InvalidTokenError
from pydantic import ValidationError
from sqlmodel import Session

from app import crud
from app.api.errors import admin_required, not_an_ambassador
from app.api.schemas import TokenPayload
from app.core import security
from app.core.db import engine
from app.models import Ambassador, User
from app.services.attribution import (
    ClickRecorder,
    CookieAttributionStore,
    ReferralTracker,
    UtmParams,
)

reusable_oauth2 = HTTPBearer()


def get_db() -> Generator[Session, None, None]:
    """
    获取数据库会话（依赖注入）

    使用 yield 确保会话在请求结束后自动关闭。
    """
    with Session(engine) as session:
        yield session


SessionDep = Annotated[Session, Depends(get_db)]
TokenDep = Annotated[HTTPAuthorizationCredentials, Depends(reusable_oauth2)]


def get_current_user(session: SessionDep, token: TokenDep) -> User:
    """
    获取当前登录用户

    token 由认证服务签发，sub 为用户 ID。token 无效或用户不存在时返回 401。
    """
    try:
        payload = security.decode_access_token(token.credentials)
        token_data = TokenPayload(**payload)
    except (InvalidTokenError, ValidationError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    if not token_data.sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    user = session.get(User, token_data.sub)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


def get_current_admin(current_user: CurrentUser) -> User:
    """要求当前用户为管理员"""
    if not current_user.is_admin:
        raise admin_required()
    return current_user


AdminUser = Annotated[User, Depends(get_current_admin)]


def get_current_ambassador(session: SessionDep, current_user: CurrentUser) -> Ambassador:
    """要求当前用户为大使"""
    ambassador = crud.ambassador.get_by_user_id(session=session, user_id=current_user.id)
    if not ambassador:
        raise not_an_ambassador()
    return ambassador


CurrentAmbassador = Annotated[Ambassador, Depends(get_current_ambassador)]


def click_recorder(session: Session) -> ClickRecorder:
    """点击记录写入数据库；失败时回滚会话，由 ReferralTracker 降级为警告日志"""

    def _record_click(code: str, utm: UtmParams) -> None:
        try:
            crud.referral.record_click(
                session=session,
                code=code,
                utm_source=utm.source,
                utm_medium=utm.medium,
                utm_campaign=utm.campaign,
            )
        except Exception:
            session.rollback()
            raise

    return _record_click


def get_referral_tracker(session: SessionDep, request: Request, response: Response) -> ReferralTracker:
    """基于 Cookie 的推荐归因跟踪器"""
    return ReferralTracker(CookieAttributionStore(request, response), record_click=click_recorder(session))


TrackerDep = Annotated[ReferralTracker, Depends(get_referral_tracker)]
