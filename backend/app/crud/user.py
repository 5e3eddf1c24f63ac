"""用户 CRUD 操作"""
from sqlmodel import Session, select

from app.models import User


def get_by_email(*, session: Session, email: str) -> User | None:
    """根据邮箱查询用户"""
    statement = select(User).where(User.email == email)
    return session.exec(statement).first()


def create(
    *,
    session: Session,
    email: str,
    full_name: str | None = None,
    is_admin: bool = False,
    user_id: str | None = None,
) -> User:
    """创建用户（ID 可由认证服务指定）"""
    user = User(email=email, full_name=full_name, is_admin=is_admin)
    if user_id:
        user.id = user_id
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def get_or_create_by_email(*, session: Session, email: str, is_admin: bool = False) -> User:
    """根据邮箱获取或创建用户"""
    user = get_by_email(session=session, email=email)
    if user:
        return user
    return create(session=session, email=email, is_admin=is_admin)
