"""
自定义异常模块

所有业务异常都继承自 AppError，在 main.py 中有统一的异常处理器。

错误码约定：HTTP 状态码 * 1000 + 序号，例如 404001。
"""
from __future__ import annotations


class AppError(Exception):
    """
    应用自定义异常类

    - code: 业务错误码（用于前端区分不同错误）
    - message: 错误消息
    - status_code: HTTP 状态码（400, 404, 500 等）

    使用示例：
        raise AppError(code=404002, message="Ambassador not found", status_code=404)
    """

    def __init__(self, *, code: int, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code


def invalid_referral_code() -> AppError:
    """推荐码格式不合法（只允许 3-32 位字母、数字、下划线、连字符）"""
    return AppError(code=400201, message="Invalid referral code", status_code=400)


def admin_required() -> AppError:
    return AppError(code=403001, message="Admin privileges required", status_code=403)


def not_an_ambassador() -> AppError:
    return AppError(code=403002, message="Current user is not an ambassador", status_code=403)
