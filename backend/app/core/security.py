from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from app.core.config import settings

# 身份由外部认证服务签发，本服务只校验 token 并读取 sub（用户 ID）
ALGORITHM = "HS256"


def create_access_token(subject: str | Any, expires_delta: timedelta) -> str:
    """
    签发与外部认证服务格式相同的 token

    线上 token 由外部认证服务签发，这里只给测试和本地调试工具使用。
    """
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode = {"exp": expire, "sub": str(subject)}
    encoded_jwt = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str) -> dict[str, Any]:
    """解析并校验 JWT，失败时抛出 jwt.InvalidTokenError"""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
