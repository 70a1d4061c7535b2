"""
检索服务

在模块知识库中检索与问题相关的片段：
1. 按模块意图扩展查询
2. 向量检索（按 moduleSlug / fileId 过滤）
3. 可选 LLM 重排（Claude 打分）
"""

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from app.config import get_settings
from app.exceptions import LLMError
from app.infra.embeddings import get_embedding, get_query_embedding, zero_vector
from app.infra.llm import anthropic_messages
from app.infra.vector_store import SearchFilter, VectorSearchResult, vector_store

logger = logging.getLogger(__name__)

# 模块 slug → 查询意图提示
MODULE_INTENT_HINTS = {
    "linkedin-post": "LinkedIn post writing professional B2B content",
    "twitter-thread": "Twitter thread writing engaging social media",
    "x-thread": "X thread writing engaging social media",
    "blog-post": "blog article writing informative content",
    "email-campaign": "email marketing professional communication",
    "content-strategy": "content strategy planning marketing",
}

RERANK_MAX_CANDIDATES = 12
RERANK_TRUNCATE_CHARS = 900
RERANK_SCORES_RE = re.compile(r"\[[\d\s,.]+\]")

RERANK_PROMPT = """You are a relevance scoring expert. Given a user query and a list of text chunks, score each chunk's relevance to answering the query.

Query: "{query}"

Chunks:
{chunks}

Return ONLY a JSON array of scores (0.0 to 1.0) for each chunk in order, like: [0.95, 0.82, 0.65, ...]
Higher scores mean more relevant. Consider:
- Direct answer potential
- Topic alignment
- Specificity
- Usefulness for the query

JSON array:"""


@dataclass
class RetrievedChunk:
    """检索命中的片段"""
    text: str
    score: float
    filename: str = ""
    file_id: str = ""
    chunk_index: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class RetrievalResult:
    chunks: list[RetrievedChunk]
    total_retrieved: int
    query: str


def expand_query(query: str, module_slug: str) -> str:
    hint = MODULE_INTENT_HINTS.get(module_slug, "")
    return f"{query}\n{hint} professional tone actionable practical".strip()


def build_rerank_prompt(query: str, candidates: list[VectorSearchResult]) -> str:
    parts = []
    for idx, c in enumerate(candidates):
        text = c.payload.get("text", "")
        if len(text) > RERANK_TRUNCATE_CHARS:
            text = text[:RERANK_TRUNCATE_CHARS] + "..."
        parts.append(f"[{idx}] {text}")
    return RERANK_PROMPT.format(query=query, chunks="\n\n".join(parts))


def parse_rerank_scores(text: str) -> list[float]:
    """从 LLM 输出中解析分数数组，解析失败返回空列表"""
    match = RERANK_SCORES_RE.search(text)
    if not match:
        logger.warning("重排输出中未找到分数数组")
        return []
    try:
        scores = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.warning(f"解析重排分数失败: {e}")
        return []
    if not isinstance(scores, list):
        return []
    return [float(s) if isinstance(s, (int, float)) else 0.5 for s in scores]


async def llm_rerank(
    query: str,
    candidates: list[VectorSearchResult],
    top_k: int,
) -> list[VectorSearchResult]:
    """
    使用 Claude 对候选片段打分重排

    只对前 RERANK_MAX_CANDIDATES 个候选打分，重排后保留 top_k 个，
    未参与打分的候选追加在后面。任何失败都返回原始顺序。
    """
    settings = get_settings()
    to_rerank = candidates[:RERANK_MAX_CANDIDATES]

    try:
        response = await anthropic_messages(
            [{"role": "user", "content": build_rerank_prompt(query, to_rerank)}],
            model=settings.anthropic_workflow_model,
            temperature=0,
            max_tokens=2000,
        )
    except LLMError as e:
        logger.error(f"LLM 重排失败，使用原始分数: {e}")
        return candidates

    scores = parse_rerank_scores(response.text)
    reranked = [
        VectorSearchResult(
            id=c.id,
            score=scores[idx] if idx < len(scores) else c.score * 0.5,
            payload=c.payload,
        )
        for idx, c in enumerate(to_rerank)
    ]
    reranked.sort(key=lambda r: r.score, reverse=True)

    return reranked[:top_k] + candidates[RERANK_MAX_CANDIDATES:]


def _to_chunk(result: VectorSearchResult) -> RetrievedChunk:
    payload = result.payload
    return RetrievedChunk(
        text=payload.get("text", ""),
        score=result.score,
        filename=payload.get("filename", ""),
        file_id=payload.get("fileId", ""),
        chunk_index=payload.get("chunkIndex", 0),
        metadata={
            "domain": payload.get("domain"),
            "persona_role": payload.get("personaRole"),
            "subtopic": payload.get("subtopic"),
        },
    )


async def retrieve(
    module_slug: str,
    query: str,
    top_k: int = 10,
    score_threshold: float = 0.0,
    rerank: bool = False,
    rerank_top_k: int | None = None,
    file_id: str | None = None,
    domain: str | None = None,
) -> RetrievalResult:
    """
    在模块知识库中检索

    Args:
        module_slug: 模块 slug
        query: 用户问题
        top_k: 返回数量
        score_threshold: 最低相似度（向量检索时放宽到 0.8 倍）
        rerank: 是否启用 LLM 重排
        rerank_top_k: 重排后保留数量，默认等于 top_k
        file_id: 仅检索某个文件

    Raises:
        EmbeddingError / VectorStoreError: 向量化或检索失败
    """
    rerank_top_k = rerank_top_k or top_k

    query_vector = await get_query_embedding(expand_query(query, module_slug))

    initial = await vector_store.search(
        query_vector,
        top_k=min(top_k * 3, 30) if rerank else top_k,
        score_threshold=score_threshold * 0.8,
        search_filter=SearchFilter(module_slug=module_slug, file_id=file_id, domain=domain),
    )

    final = initial
    if rerank and len(initial) > top_k:
        logger.info(f"LLM 重排 {len(initial)} 个候选")
        final = await llm_rerank(query, initial, rerank_top_k)

    logger.info(f"检索完成: module={module_slug}, candidates={len(initial)}")
    return RetrievalResult(
        chunks=[_to_chunk(r) for r in final[:top_k]],
        total_retrieved=len(initial),
        query=query,
    )


async def similarity_search(module_slug: str, text: str, top_k: int = 5) -> list[VectorSearchResult]:
    vector = await get_embedding(text)
    return await vector_store.search(vector, top_k=top_k, search_filter=SearchFilter(module_slug=module_slug))


async def get_chunks_by_file_id(module_slug: str, file_id: str) -> list[VectorSearchResult]:
    """用零向量 + 过滤条件列出某个文件的全部向量"""
    return await vector_store.search(
        zero_vector(),
        top_k=1000,
        score_threshold=0.0,
        search_filter=SearchFilter(module_slug=module_slug, file_id=file_id),
    )


async def delete_file_chunks(module_slug: str, file_id: str) -> None:
    await vector_store.delete_by_filter(SearchFilter(module_slug=module_slug, file_id=file_id))


async def get_module_chunk_count(module_slug: str) -> int:
    return await vector_store.count(SearchFilter(module_slug=module_slug))


async def get_file_chunk_count(module_slug: str, file_id: str) -> int:
    return await vector_store.count(SearchFilter(module_slug=module_slug, file_id=file_id))
