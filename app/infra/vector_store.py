"""
向量数据库模块 (Vector Store)

封装 Qdrant 向量数据库的操作：
- 向量存储（upsert_batch）
- 相似度搜索（search）
- 按 ID / 过滤条件删除
- 计数与 collection 信息

所有模块共享一个 collection（默认 ace_knowledge），
通过 payload 中的 moduleSlug / fileId 过滤隔离。

特性：
- 使用 AsyncQdrantClient，不阻塞事件循环
- collection 与 payload 索引懒创建
- 批量写入（每批 100 个 point）
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

from qdrant_client import AsyncQdrantClient
from qdrant_client.http import models

from app.config import get_settings
from app.exceptions import VectorStoreError

logger = logging.getLogger(__name__)

UPSERT_BATCH_SIZE = 100

# SearchFilter 字段 → payload 键
FILTER_FIELDS = {
    "module_slug": "moduleSlug",
    "file_id": "fileId",
    "domain": "domain",
}


@dataclass
class VectorPoint:
    """待写入的向量记录"""
    id: str
    vector: list[float]
    payload: dict[str, Any]


@dataclass
class VectorSearchResult:
    """检索结果"""
    id: str
    score: float
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class SearchFilter:
    """payload 过滤条件（全部为 AND）"""
    module_slug: str | None = None
    file_id: str | None = None
    domain: str | None = None


@lru_cache(maxsize=1)
def _get_async_client() -> AsyncQdrantClient:
    """获取异步 Qdrant 客户端（单例）"""
    settings = get_settings()
    return AsyncQdrantClient(
        url=settings.qdrant_url,
        api_key=settings.qdrant_api_key,
        timeout=10.0,
        prefer_grpc=False,
    )


def build_filter(search_filter: SearchFilter | None) -> models.Filter | None:
    """将 SearchFilter 转换为 Qdrant Filter，无条件时返回 None"""
    if search_filter is None:
        return None

    must = []
    for attr, key in FILTER_FIELDS.items():
        value = getattr(search_filter, attr)
        if value:
            must.append(models.FieldCondition(key=key, match=models.MatchValue(value=value)))

    return models.Filter(must=must) if must else None


class AsyncQdrantVectorStore:
    """
    异步 Qdrant 向量存储

    注意：所有方法都是异步的，需要使用 await 调用
    """

    def __init__(self, client: AsyncQdrantClient | None = None):
        self._client = client
        self._settings = get_settings()
        self.collection_name = self._settings.qdrant_collection
        self.dim = self._settings.embedding_dim
        self._collection_ready = False

    @property
    def client(self) -> AsyncQdrantClient:
        if self._client is None:
            self._client = _get_async_client()
        return self._client

    async def ensure_collection(self) -> None:
        """确保 collection 与 payload 索引存在（带缓存）"""
        if self._collection_ready:
            return

        try:
            exists = await self.client.collection_exists(self.collection_name)
            if not exists:
                logger.info(f"创建 Qdrant collection: {self.collection_name}")
                await self.client.create_collection(
                    collection_name=self.collection_name,
                    vectors_config=models.VectorParams(
                        size=self.dim,
                        distance=models.Distance.COSINE,
                    ),
                )
                for field_name in ("moduleSlug", "fileId"):
                    await self.client.create_payload_index(
                        collection_name=self.collection_name,
                        field_name=field_name,
                        field_schema=models.PayloadSchemaType.KEYWORD,
                    )
        except Exception as e:
            logger.error(f"确保 Qdrant collection 失败: {e}")
            raise VectorStoreError(f"Failed to ensure vector collection: {e}") from e

        self._collection_ready = True

    async def upsert_batch(self, points: list[VectorPoint]) -> None:
        """批量写入向量，每批 UPSERT_BATCH_SIZE 个"""
        if not points:
            return

        await self.ensure_collection()

        for i in range(0, len(points), UPSERT_BATCH_SIZE):
            batch = points[i:i + UPSERT_BATCH_SIZE]
            try:
                await self.client.upsert(
                    collection_name=self.collection_name,
                    wait=True,
                    points=[
                        models.PointStruct(id=p.id, vector=p.vector, payload=p.payload)
                        for p in batch
                    ],
                )
            except Exception as e:
                logger.error(f"向量批量写入失败（批次起点 {i}）: {e}")
                raise VectorStoreError(f"Batch vector upsert failed: {e}") from e

    async def search(
        self,
        query_vector: list[float],
        top_k: int = 10,
        search_filter: SearchFilter | None = None,
        score_threshold: float = 0.0,
    ) -> list[VectorSearchResult]:
        """
        相似度搜索

        Args:
            query_vector: 查询向量
            top_k: 返回数量
            search_filter: payload 过滤条件
            score_threshold: 最低分数

        Returns:
            按分数降序排列的结果
        """
        await self.ensure_collection()

        try:
            response = await self.client.query_points(
                collection_name=self.collection_name,
                query=query_vector,
                limit=top_k,
                score_threshold=score_threshold,
                query_filter=build_filter(search_filter),
                with_payload=True,
            )
        except Exception as e:
            logger.error(f"向量检索失败: {e}")
            raise VectorStoreError(f"Vector search failed: {e}") from e

        return [
            VectorSearchResult(id=str(p.id), score=p.score, payload=p.payload or {})
            for p in response.points
        ]

    async def delete(self, ids: list[str]) -> None:
        """按 point ID 删除"""
        if not ids:
            return

        try:
            await self.client.delete(
                collection_name=self.collection_name,
                wait=True,
                points_selector=models.PointIdsList(points=ids),
            )
            logger.info(f"已从 Qdrant 删除 {len(ids)} 个向量")
        except Exception as e:
            logger.error(f"向量删除失败: {e}")
            raise VectorStoreError(f"Vector deletion failed: {e}") from e

    async def delete_by_filter(self, search_filter: SearchFilter) -> None:
        """按过滤条件删除，无条件时不执行任何操作"""
        qdrant_filter = build_filter(search_filter)
        if qdrant_filter is None:
            logger.warning("delete_by_filter 未提供过滤条件，跳过")
            return

        try:
            await self.client.delete(
                collection_name=self.collection_name,
                wait=True,
                points_selector=models.FilterSelector(filter=qdrant_filter),
            )
        except Exception as e:
            logger.error(f"按条件删除向量失败: {e}")
            raise VectorStoreError(f"Vector deletion by filter failed: {e}") from e

    async def count(self, search_filter: SearchFilter | None = None) -> int:
        """精确计数，失败时返回 0"""
        try:
            result = await self.client.count(
                collection_name=self.collection_name,
                count_filter=build_filter(search_filter),
                exact=True,
            )
            return result.count
        except Exception as e:
            logger.error(f"向量计数失败: {e}")
            return 0

    async def collection_info(self) -> Any | None:
        """collection 信息，失败时返回 None"""
        try:
            return await self.client.get_collection(self.collection_name)
        except Exception as e:
            logger.error(f"获取 collection 信息失败: {e}")
            return None


vector_store = AsyncQdrantVectorStore()
