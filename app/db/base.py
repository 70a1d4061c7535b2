"""
SQLAlchemy ORM 基类定义

所有数据库模型都继承自 Base，SQLAlchemy 通过 Base.metadata 收集表结构，
用于自动建表（开发环境）和 Alembic 迁移。
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """声明式基类"""
    pass
