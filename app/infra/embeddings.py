"""
文本向量化模块 (Embeddings)

将文本转换为向量表示，用于语义相似度计算。

使用 OpenAI text-embedding-3-large（通过 dimensions 参数截断到 1536 维），
所有向量都做 L2 归一化，空文本返回零向量。

使用示例：
    from app.infra.embeddings import get_embedding, get_embeddings, get_query_embedding

    vec = await get_embedding("什么是 RAG？")
    vecs = await get_embeddings(["文本1", "文本2"])
    qvec = await get_query_embedding("查询语句")  # 带 Redis 缓存
"""

import logging
import math
from functools import lru_cache

from openai import AsyncOpenAI

from app.config import get_settings
from app.exceptions import EmbeddingError
from app.infra.redis_cache import get_redis_cache

logger = logging.getLogger(__name__)


@lru_cache(maxsize=4)
def _get_openai_client(api_key: str, base_url: str | None) -> AsyncOpenAI:
    """获取 OpenAI 客户端"""
    return AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=60.0)


def clean_text(text: str) -> str:
    """换行替换为空格并去掉首尾空白"""
    return text.replace("\n", " ").strip()


def l2_normalize(vector: list[float]) -> list[float]:
    """L2 归一化，零向量原样返回"""
    norm = math.sqrt(sum(v * v for v in vector)) or 1.0
    return [v / norm for v in vector]


def zero_vector() -> list[float]:
    return [0.0] * get_settings().embedding_dim


def _client() -> AsyncOpenAI:
    settings = get_settings()
    if not settings.openai_api_key:
        raise EmbeddingError("OPENAI_API_KEY 未配置，无法生成 embedding")
    return _get_openai_client(settings.openai_api_key, settings.openai_api_base)


async def _embed_batch(texts: list[str]) -> list[list[float]]:
    """单次 API 调用，返回与输入顺序一致的归一化向量"""
    settings = get_settings()
    try:
        response = await _client().embeddings.create(
            model=settings.embedding_model,
            input=texts,
            dimensions=settings.embedding_dim,
        )
    except EmbeddingError:
        raise
    except Exception as e:
        raise EmbeddingError(f"Embedding API error: {e}") from e

    sorted_data = sorted(response.data, key=lambda x: x.index)
    return [l2_normalize(d.embedding) for d in sorted_data]


async def get_embedding(text: str) -> list[float]:
    """
    获取单个文本的 Embedding 向量

    Raises:
        EmbeddingError: Embedding 生成失败
    """
    cleaned = clean_text(text)
    if not cleaned:
        logger.warning("空文本传入 get_embedding，返回零向量")
        return zero_vector()

    try:
        return (await _embed_batch([cleaned]))[0]
    except EmbeddingError as e:
        logger.error(f"Embedding 生成失败: {e}")
        raise


async def get_embeddings(texts: list[str]) -> list[list[float]]:
    """
    批量获取文本的 Embedding 向量

    按 embedding_batch_size 分批调用，空文本对应零向量。

    Returns:
        list[list[float]]: 向量列表，顺序与输入对应
    """
    if not texts:
        return []

    settings = get_settings()
    batch_size = settings.embedding_batch_size
    results: list[list[float]] = []

    for i in range(0, len(texts), batch_size):
        batch = [clean_text(t) for t in texts[i:i + batch_size]]
        non_empty = [t for t in batch if t]
        try:
            vectors = await _embed_batch(non_empty) if non_empty else []
        except EmbeddingError as e:
            logger.error(f"批量 Embedding 失败（批次起点 {i}）: {e}")
            raise

        it = iter(vectors)
        results.extend(next(it) if t else zero_vector() for t in batch)

    return results


async def get_query_embedding(query: str) -> list[float]:
    """
    获取查询向量

    与 get_embedding 相同，但会优先读取 Redis 缓存（已配置时）。
    """
    cleaned = clean_text(query)
    if not cleaned:
        logger.warning("空查询传入 get_query_embedding，返回零向量")
        return zero_vector()

    settings = get_settings()
    cache = get_redis_cache()
    cached = await cache.get_embedding(model=settings.embedding_model, text=cleaned)
    if cached is not None:
        return cached

    vector = await get_embedding(cleaned)
    await cache.set_embedding(model=settings.embedding_model, text=cleaned, vector=vector)
    return vector
