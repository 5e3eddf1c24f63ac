"""
应用启动前检查脚本

在应用（API / 定时任务）启动前等待依赖服务就绪。
主要用于 Docker Compose 环境：数据库容器可能还在初始化，
通过重试避免启动失败。

- 数据库：必须可用，最多重试 5 分钟
- Redis：只有定时任务用它加锁，不可用时只打警告
"""
import logging

import redis
from sqlalchemy import Engine
from sqlmodel import Session, select
from tenacity import (
    after_log,
    before_log,
    retry,
    stop_after_attempt,
    wait_fixed,
)

from app.core.db import engine
from app.core.redis import get_redis

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

max_tries = 60 * 5  # 300 次，每秒一次
wait_seconds = 1


@retry(
    stop=stop_after_attempt(max_tries),
    wait=wait_fixed(wait_seconds),
    before=before_log(logger, logging.INFO),
    after=after_log(logger, logging.WARN),
)
def init(db_engine: Engine) -> None:
    """执行 select(1) 检查数据库是否可用，失败时由 tenacity 重试"""
    try:
        with Session(db_engine) as session:
            session.exec(select(1))
    except Exception as e:
        logger.error(e)
        raise e


def check_redis(client: redis.Redis) -> bool:
    try:
        return bool(client.ping())
    except redis.RedisError as exc:
        logger.warning("Redis not reachable, scheduled jobs will skip until it is: %s", exc)
        return False


def main() -> None:
    logger.info("Initializing service")
    init(engine)
    check_redis(get_redis())
    logger.info("Service finished initializing")


if __name__ == "__main__":  # pragma: no cover
    main()
