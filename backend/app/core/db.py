"""
数据库连接模块

管理数据库引擎的创建。

重要提示：
- 数据库表结构通过 Alembic 迁移管理，不要在这里创建表
- 确保在使用前导入所有模型（app.models），否则关系可能无法正确初始化
"""
from sqlmodel import create_engine

from app.core.config import settings

# pool_pre_ping: webhook 调用间隔可能很长，连接被数据库回收后自动重连
engine = create_engine(str(settings.SQLALCHEMY_DATABASE_URI), pool_pre_ping=True)
