"""
初始数据脚本

在数据库迁移完成后执行（见 scripts/prestart.sh），创建初始管理员账户。
管理员邮箱由 FIRST_ADMIN_EMAIL 配置，未配置时跳过。
"""
import logging

from sqlmodel import Session

from app import crud
from app.core.config import settings
from app.core.db import engine

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def init(session: Session) -> None:
    """创建初始管理员（已存在时把它提升为管理员）"""
    email = settings.FIRST_ADMIN_EMAIL
    if not email:
        logger.info("FIRST_ADMIN_EMAIL not set, skip admin seed")
        return
    user = crud.get_or_create_user_by_email(session=session, email=email, is_admin=True)
    if not user.is_admin:
        user.is_admin = True
        session.add(user)
        session.commit()
    logger.info("Admin user ready: %s", user.id)


def main() -> None:
    logger.info("Creating initial data")
    with Session(engine) as session:
        init(session)
    logger.info("Initial data created")


if __name__ == "__main__":  # pragma: no cover
    main()
