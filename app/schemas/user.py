"""用户与登录相关的请求/响应模型"""

from pydantic import BaseModel, Field, field_validator

from app.schemas.base import CamelModel, TimestampedResponse

# bcrypt 只接受 72 字节以内的密码
PASSWORD_MAX_BYTES = 72


def check_password_bytes(value: str | None) -> str | None:
    if value is not None and len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    return value


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)


class LoginUser(CamelModel):
    id: str
    email: str
    is_admin: bool
    tier: str


class LoginResponse(BaseModel):
    """登录响应，access_token 保持 snake_case"""
    access_token: str
    user: LoginUser


class UserResponse(TimestampedResponse):
    """用户响应（不含密码）"""
    email: str
    is_admin: bool
    tier: str


class UserCreate(CamelModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6, description="明文密码，存储前 bcrypt 哈希")
    is_admin: bool = False
    tier: str = "basic"

    check_password = field_validator("password")(check_password_bytes)


class UserUpdate(CamelModel):
    """管理员更新用户，未提供的字段保持不变"""
    email: str | None = Field(default=None, min_length=3, max_length=255)
    password: str | None = Field(default=None, min_length=6)
    is_admin: bool | None = None
    tier: str | None = None

    check_password = field_validator("password")(check_password_bytes)


class ProfileUpdate(CamelModel):
    email: str | None = Field(default=None, min_length=3, max_length=255)


class ChangePasswordRequest(CamelModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)

    check_new_password = field_validator("new_password")(check_password_bytes)
