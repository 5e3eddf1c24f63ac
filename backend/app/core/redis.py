"""
Redis 连接模块

Redis 在本服务中只用于定时任务的分布式锁（多个 worker 实例时保证
同一时刻只有一个对账任务在执行）。

使用 @lru_cache 装饰器实现单例模式，避免重复创建连接。
"""
from __future__ import annotations

import logging
from functools import lru_cache

import redis

from app.core.config import settings

logger = logging.getLogger(__name__)

# 只有持有者才能释放锁（比较 value 后再删除，Lua 脚本保证原子性）
_RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


@lru_cache(maxsize=1)
def get_redis() -> redis.Redis:
    """
    获取 Redis 客户端实例（单例模式）

    decode_responses=True: 自动将字节响应解码为字符串
    """
    return redis.Redis(
        host=settings.REDIS_HOST,
        port=settings.REDIS_PORT,
        db=settings.REDIS_DB,
        password=settings.REDIS_PASSWORD,
        decode_responses=True,
    )


def acquire_lock(client: redis.Redis, lock_key: str, lock_value: str, expire_seconds: int) -> bool:
    """
    获取分布式锁（SET NX EX）

    Returns:
        是否获取成功；Redis 不可用时返回 False
    """
    try:
        return bool(client.set(lock_key, lock_value, ex=expire_seconds, nx=True))
    except redis.RedisError as exc:
        logger.error("Failed to acquire lock %s: %s", lock_key, exc)
        return False


def release_lock(client: redis.Redis, lock_key: str, lock_value: str) -> bool:
    """释放分布式锁（lock_value 必须匹配）"""
    try:
        return client.eval(_RELEASE_LOCK_SCRIPT, 1, lock_key, lock_value) == 1
    except redis.RedisError as exc:
        logger.error("Failed to release lock %s: %s", lock_key, exc)
        return False
