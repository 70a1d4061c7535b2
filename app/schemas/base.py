"""公共基类：字段名 snake_case，线上格式 camelCase"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """请求同时接受 camelCase 和 snake_case，响应输出 camelCase"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class TimestampedResponse(CamelModel):
    id: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class MessageResponse(BaseModel):
    """只有一条提示信息的响应"""
    message: str


def reject_null(value):
    """显式传 null 的非空字段按校验错误处理"""
    if value is None:
        raise ValueError("Field may not be null")
    return value
