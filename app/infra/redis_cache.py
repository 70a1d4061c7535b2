"""
Redis 缓存模块

缓存查询向量，避免相同问题重复调用 Embedding API。

缓存策略：
- 键基于 (model, text) 的 MD5 生成，长度固定
- 使用 TTL 自动过期
- Redis 未配置或不可用时自动降级为无缓存模式（不影响业务逻辑）
"""

import hashlib
import json
import logging
from functools import lru_cache
from typing import Any

import redis.asyncio as aioredis

from app.config import get_settings

logger = logging.getLogger(__name__)


class RedisCache:
    """
    Redis 缓存客户端

    如果 Redis 不可用，所有读操作返回 None，写操作静默跳过。
    """

    def __init__(self):
        self.settings = get_settings()
        self._client = None
        self._available = False
        self._init_client()

    def _init_client(self) -> None:
        if not self.settings.redis_url:
            logger.info("Redis 未配置，缓存功能已禁用")
            return

        if not self.settings.redis_cache_enabled:
            logger.info("Redis 缓存已禁用（redis_cache_enabled=False）")
            return

        try:
            self._client = aioredis.from_url(
                self.settings.redis_url,
                encoding="utf-8",
                decode_responses=True,
            )
            self._available = True
            logger.info("Redis 缓存已启用")
        except Exception as e:
            logger.warning(f"Redis 连接失败: {e}，缓存功能已禁用")

    @property
    def available(self) -> bool:
        return self._available

    def _make_cache_key(self, prefix: str, **kwargs: Any) -> str:
        """基于参数生成 MD5 哈希键，格式为 {key_prefix}{prefix}{hash}"""
        sorted_params = json.dumps(kwargs, sort_keys=True, ensure_ascii=False)
        hash_value = hashlib.md5(sorted_params.encode()).hexdigest()
        return f"{self.settings.redis_cache_key_prefix}{prefix}{hash_value}"

    async def get_embedding(self, *, model: str, text: str) -> list[float] | None:
        """读取缓存的查询向量，未命中返回 None"""
        if not self.available:
            return None

        try:
            key = self._make_cache_key("emb:", model=model, text=text)
            cached = await self._client.get(key)
            if cached:
                logger.debug(f"向量缓存命中: key={key[:50]}...")
                return json.loads(cached)
            return None
        except Exception as e:
            logger.warning(f"获取向量缓存失败: {e}")
            return None

    async def set_embedding(self, *, model: str, text: str, vector: list[float]) -> None:
        """写入查询向量缓存"""
        if not self.available:
            return

        try:
            key = self._make_cache_key("emb:", model=model, text=text)
            await self._client.setex(key, self.settings.redis_cache_ttl, json.dumps(vector))
        except Exception as e:
            logger.warning(f"设置向量缓存失败: {e}")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()


@lru_cache(maxsize=1)
def get_redis_cache() -> RedisCache:
    """获取 Redis 缓存单例"""
    return RedisCache()
