"""模块与收藏相关的请求/响应模型"""

from typing import Literal

from pydantic import Field, field_validator

from app.schemas.base import CamelModel, TimestampedResponse, reject_null

ModuleTier = Literal["MVP", "Pro+"]


class ModuleCreate(CamelModel):
    """
    创建模块请求

    示例:
    ```json
    {
        "name": "VyraHook Polisher",
        "slug": "vyrahook-polisher",
        "tier": "MVP",
        "systemPrompt": "You polish hooks for LinkedIn posts."
    }
    ```
    """
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255)
    tier: ModuleTier
    cover_image: str | None = None
    is_active: bool = True
    system_prompt: str | None = None
    position: int = 0
    is_recommended: bool = False
    empty_state_text: str | None = None
    temperature: float = Field(default=0.7, ge=0.0, le=1.0)


class ModuleUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    slug: str | None = Field(default=None, min_length=1, max_length=255)
    tier: ModuleTier | None = None
    cover_image: str | None = None
    is_active: bool | None = None
    system_prompt: str | None = None
    position: int | None = None
    is_recommended: bool | None = None
    empty_state_text: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=1.0)

    # 只有可空列允许显式 null
    check_not_null = field_validator(
        "name", "slug", "tier", "is_active", "position", "is_recommended", "temperature"
    )(reject_null)


class ModuleResponse(TimestampedResponse):
    name: str
    slug: str
    tier: str
    cover_image: str | None = None
    is_active: bool
    system_prompt: str | None = None
    position: int
    is_recommended: bool
    empty_state_text: str | None = None
    temperature: float


class ModuleWithFavorite(ModuleResponse):
    is_favorite: bool = False


class ModulePosition(CamelModel):
    id: str
    position: int


class FavoriteResponse(TimestampedResponse):
    user_id: str
    module_id: str
