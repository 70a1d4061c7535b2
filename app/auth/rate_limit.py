"""
请求限流

滑动窗口限流器，按客户端 IP 计数，保护会调用 LLM 的接口
（聊天发送、工作流、AI 透传）。

- 配置了 redis_url 时使用 Redis Sorted Set，支持多实例部署
- 否则使用进程内存
"""

import logging
import time
import uuid
from abc import ABC, abstractmethod
from collections import deque
from functools import lru_cache

import redis
from fastapi import HTTPException, Request, status

from app.config import get_settings

logger = logging.getLogger(__name__)


class BaseRateLimiter(ABC):
    def __init__(self, window_seconds: int, max_requests: int) -> None:
        self.window_seconds = window_seconds
        self.max_requests = max_requests

    @abstractmethod
    def allow(self, key: str) -> bool:
        """记一次请求，超过窗口内上限时返回 False"""


class MemoryRateLimiter(BaseRateLimiter):
    """
    进程内滑动窗口

    每个窗口周期整体清扫一次，过期的 IP 不会一直留在内存里。
    """

    def __init__(self, window_seconds: int, max_requests: int) -> None:
        super().__init__(window_seconds, max_requests)
        self._buckets: dict[str, deque[float]] = {}
        self._last_sweep = time.time()

    def _sweep(self, window_start: float) -> None:
        for key in list(self._buckets):
            bucket = self._buckets[key]
            while bucket and bucket[0] <= window_start:
                bucket.popleft()
            if not bucket:
                del self._buckets[key]

    def allow(self, key: str) -> bool:
        now = time.time()
        window_start = now - self.window_seconds
        if now - self._last_sweep >= self.window_seconds:
            self._sweep(window_start)
            self._last_sweep = now

        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = self._buckets[key] = deque()
        while bucket and bucket[0] <= window_start:
            bucket.popleft()

        if len(bucket) >= self.max_requests:
            return False
        bucket.append(now)
        return True

    def reset(self) -> None:
        self._buckets.clear()
        self._last_sweep = time.time()


class RedisRateLimiter(BaseRateLimiter):
    """
    Redis Sorted Set 滑动窗口，score 为请求时间

    Redis 不可用时放行，只记 warning。
    """

    def __init__(self, redis_url: str, window_seconds: int, max_requests: int) -> None:
        super().__init__(window_seconds, max_requests)
        self._redis_url = redis_url
        self._client = None

    @property
    def client(self):
        if self._client is None:
            self._client = redis.from_url(self._redis_url)
        return self._client

    def allow(self, key: str) -> bool:
        now = time.time()
        redis_key = f"throttle:{key}"
        # 同一时刻的多次请求各占一个成员
        member = f"{now}:{uuid.uuid4().hex[:8]}"

        try:
            pipe = self.client.pipeline()
            pipe.zremrangebyscore(redis_key, 0, now - self.window_seconds)
            pipe.zadd(redis_key, {member: now})
            pipe.zcard(redis_key)
            pipe.expire(redis_key, self.window_seconds + 1)
            count = pipe.execute()[2]

            if count > self.max_requests:
                self.client.zrem(redis_key, member)
                return False
            return True
        except redis.RedisError as e:
            logger.warning(f"Redis 限流异常，放行请求: {e}")
            return True

@lru_cache(maxsize=1)
def get_rate_limiter() -> BaseRateLimiter:
    """获取限流器实例（单例）"""
    settings = get_settings()

    if settings.redis_url:
        logger.info("使用 Redis 限流器")
        return RedisRateLimiter(
            redis_url=settings.redis_url,
            window_seconds=settings.throttle_ttl,
            max_requests=settings.throttle_limit,
        )
    logger.info("使用内存限流器（单实例模式）")
    return MemoryRateLimiter(
        window_seconds=settings.throttle_ttl,
        max_requests=settings.throttle_limit,
    )


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def throttle(request: Request) -> None:
    """限流依赖，超限返回 429"""
    if not get_rate_limiter().allow(client_ip(request)):
        logger.warning(f"请求被限流: ip={client_ip(request)}, path={request.url.path}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={"code": "RATE_LIMIT_EXCEEDED", "detail": "Too many requests"},
        )
