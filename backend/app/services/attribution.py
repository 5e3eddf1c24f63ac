"""
推荐归因服务

管理浏览器端的推荐码归因（first-click 归因）：
- 第一次点击推荐链接时写入归因，30 天内不会被其他推荐码覆盖
- checkout 时读取归因，把订单记到对应大使名下
- 成交记录写入后清除归因，避免同一归因被后续无关订单重复使用

点击记录是尽力而为的：记录失败只打警告日志，不影响写入归因。
丢失一次点击计数可以接受，丢失归因不可以。

归因存储抽象为 AttributionStore（load/save/delete），默认实现基于 Cookie。
"""
from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from fastapi import Request, Response

from app.core.config import settings
from app.models import utc_now

logger = logging.getLogger(__name__)

_CODE_RE = re.compile(r"^[A-Z0-9_-]{3,32}$")


def normalize_code(code: str | None) -> str | None:
    """
    规范化推荐码（去空白、转大写）

    Returns:
        合法的推荐码；格式不合法时返回 None
    """
    if not code:
        return None
    value = code.strip().upper()
    if not _CODE_RE.match(value):
        return None
    return value


@dataclass(frozen=True)
class UtmParams:
    """推荐链接上的 UTM 参数"""
    source: str | None = None
    medium: str | None = None
    campaign: str | None = None


@dataclass(frozen=True)
class ReferralAttribution:
    """
    推荐归因

    first_seen_at / expires_at 为空表示由存储本身负责过期（如 Cookie 的 Max-Age）。
    """
    code: str
    first_seen_at: datetime | None = None
    expires_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now > self.expires_at


class AttributionStore(Protocol):
    def load(self) -> ReferralAttribution | None: ...

    def save(self, attribution: ReferralAttribution) -> None: ...

    def delete(self) -> None: ...


class CookieAttributionStore:
    """
    基于 Cookie 的归因存储

    Cookie 值就是推荐码本身，Max-Age 固定为 REFERRAL_COOKIE_DAYS 天，path=/。
    过期由浏览器负责，所以 load() 返回的归因不带时间。
    同一请求内先写后读能读到新值。
    """

    def __init__(self, request: Request, response: Response) -> None:
        self.request = request
        self.response = response
        self.cookie_name = settings.REFERRAL_COOKIE_NAME
        # None: 本次请求未改动；"": 已删除
        self._pending: str | None = None

    def load(self) -> ReferralAttribution | None:
        value = self._pending if self._pending is not None else self.request.cookies.get(self.cookie_name)
        code = normalize_code(value)
        if code is None:
            return None
        return ReferralAttribution(code=code)

    def save(self, attribution: ReferralAttribution) -> None:
        self._pending = attribution.code
        self.response.set_cookie(
            key=self.cookie_name,
            value=attribution.code,
            max_age=settings.REFERRAL_COOKIE_DAYS * 24 * 60 * 60,
            path="/",
            samesite="lax",
        )

    def delete(self) -> None:
        self._pending = ""
        self.response.delete_cookie(key=self.cookie_name, path="/")


ClickRecorder = Callable[[str, UtmParams], object]


class ReferralTracker:
    """
    推荐归因跟踪器

    Args:
        store: 归因存储
        record_click: 记录点击的回调（写点击日志、累加点击数）
        clock: 当前时间函数，测试时可替换
    """

    def __init__(
        self,
        store: AttributionStore,
        record_click: ClickRecorder | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.store = store
        self.record_click = record_click
        self.clock = clock
        self.ttl = timedelta(days=settings.REFERRAL_COOKIE_DAYS)

    def track_click(self, code: str, utm: UtmParams | None = None) -> str | None:
        """
        记录一次推荐链接点击，然后尝试写入归因

        点击记录失败只打警告，不影响归因写入。

        Returns:
            当前生效的推荐码（可能是更早的推荐码）
        """
        if self.record_click is not None:
            try:
                self.record_click(code, utm or UtmParams())
            except Exception as exc:
                logger.warning("Failed to record referral click for %s: %s", code, exc)
        self.set_referral_code(code)
        return self.get_referral_code()

    def set_referral_code(self, code: str) -> bool:
        """
        写入归因（first-click：已有未过期的归因时什么也不做）

        Returns:
            是否写入了新的归因
        """
        if self.get_referral_code() is not None:
            return False
        now = self.clock()
        self.store.save(
            ReferralAttribution(code=code, first_seen_at=now, expires_at=now + self.ttl)
        )
        return True

    def get_referral_code(self) -> str | None:
        """获取当前生效的推荐码，没有或已过期返回 None"""
        attribution = self.store.load()
        if attribution is None or attribution.is_expired(self.clock()):
            return None
        return attribution.code

    def clear_referral_code(self) -> None:
        """成交记录写入后调用，清除归因"""
        self.store.delete()
