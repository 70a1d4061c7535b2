"""
Embedding 模块单元测试

测试 app/infra/embeddings.py 的功能：
- 文本清洗、L2 归一化、零向量
- get_embedding / get_embeddings（mock OpenAI 调用）
- 查询向量缓存
"""

import math

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from app.config import get_settings
from app.exceptions import EmbeddingError
from app.infra.embeddings import (
    clean_text,
    get_embedding,
    get_embeddings,
    get_query_embedding,
    l2_normalize,
    zero_vector,
)


class TestVectorHelpers:
    """测试向量辅助函数"""

    def test_clean_text(self):
        assert clean_text("  line one\nline two \n") == "line one line two"

    def test_l2_normalize(self):
        vec = l2_normalize([3.0, 4.0])
        assert vec == pytest.approx([0.6, 0.8])
        assert math.sqrt(sum(v * v for v in vec)) == pytest.approx(1.0)

    def test_l2_normalize_zero_vector(self):
        assert l2_normalize([0.0, 0.0]) == [0.0, 0.0]

    def test_zero_vector_dimension(self):
        vec = zero_vector()
        assert len(vec) == get_settings().embedding_dim
        assert not any(vec)


class TestGetEmbedding:
    """测试 Embedding 获取"""

    @pytest.mark.asyncio
    async def test_empty_text_returns_zero_vector(self):
        with patch("app.infra.embeddings._embed_batch", AsyncMock()) as mock_batch:
            vec = await get_embedding("   \n ")

        mock_batch.assert_not_awaited()
        assert vec == zero_vector()

    @pytest.mark.asyncio
    async def test_missing_api_key_raises(self):
        with pytest.raises(EmbeddingError):
            await get_embedding("some text")

    @pytest.mark.asyncio
    async def test_api_response_sorted_and_normalized(self):
        response = MagicMock()
        response.data = [
            MagicMock(index=1, embedding=[0.0, 2.0]),
            MagicMock(index=0, embedding=[3.0, 4.0]),
        ]
        client = MagicMock()
        client.embeddings.create = AsyncMock(return_value=response)

        with patch("app.infra.embeddings._client", return_value=client):
            vectors = await get_embeddings(["first", "second"])

        assert vectors[0] == pytest.approx([0.6, 0.8])
        assert vectors[1] == pytest.approx([0.0, 1.0])
        kwargs = client.embeddings.create.call_args.kwargs
        assert kwargs["input"] == ["first", "second"]
        assert kwargs["dimensions"] == get_settings().embedding_dim

    @pytest.mark.asyncio
    async def test_api_error_wrapped(self):
        client = MagicMock()
        client.embeddings.create = AsyncMock(side_effect=RuntimeError("rate limited"))

        with patch("app.infra.embeddings._client", return_value=client):
            with pytest.raises(EmbeddingError, match="rate limited"):
                await get_embedding("text")

    @pytest.mark.asyncio
    async def test_batch_keeps_positions_of_empty_texts(self):
        with patch("app.infra.embeddings._embed_batch", AsyncMock(return_value=[[1.0], [2.0]])) as mock_batch:
            vectors = await get_embeddings(["a", "", "b"])

        mock_batch.assert_awaited_once_with(["a", "b"])
        assert vectors[0] == [1.0]
        assert vectors[1] == zero_vector()
        assert vectors[2] == [2.0]

    @pytest.mark.asyncio
    async def test_empty_input(self):
        assert await get_embeddings([]) == []


class TestQueryEmbeddingCache:
    """测试查询向量缓存"""

    @pytest.mark.asyncio
    async def test_cache_hit_skips_api(self):
        cache = MagicMock()
        cache.get_embedding = AsyncMock(return_value=[0.5, 0.5])
        cache.set_embedding = AsyncMock()

        with patch("app.infra.embeddings.get_redis_cache", return_value=cache), \
             patch("app.infra.embeddings.get_embedding", AsyncMock()) as mock_embed:
            vec = await get_query_embedding("what is a hook")

        assert vec == [0.5, 0.5]
        mock_embed.assert_not_awaited()
        cache.set_embedding.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cache_miss_stores_vector(self):
        cache = MagicMock()
        cache.get_embedding = AsyncMock(return_value=None)
        cache.set_embedding = AsyncMock()

        with patch("app.infra.embeddings.get_redis_cache", return_value=cache), \
             patch("app.infra.embeddings.get_embedding", AsyncMock(return_value=[1.0, 0.0])):
            vec = await get_query_embedding("what is a hook")

        assert vec == [1.0, 0.0]
        cache.set_embedding.assert_awaited_once()
        assert cache.set_embedding.call_args.kwargs["text"] == "what is a hook"
