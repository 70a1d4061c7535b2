"""
上下文组装服务

将检索结果组装为 LLM 可用的参考上下文：
- 去重（首尾 120 字符指纹）
- 按分数排序并在 token 预算内截取
- 按模板格式化（default / detailed / minimal）

另外提供多轮对话裁剪与 token 安全检查。
"""

import hashlib
from dataclasses import dataclass, field

from app.pipeline.base import estimate_tokens
from app.services.retrieval import RetrievalResult, RetrievedChunk

FORMATTING_OVERHEAD = 400
CONTEXT_WINDOW_LIMIT = 190000

GROUNDING_INSTRUCTION = (
    "You MUST ground every factual claim in the following reference material unless "
    "explicitly stated otherwise. If a claim is not covered here, clearly state that "
    "you're using general knowledge."
)

TEMPLATES = ("default", "detailed", "minimal")


@dataclass
class ComposedContext:
    context: str = ""
    chunks_used: int = 0
    total_tokens: int = 0
    sources: list[str] = field(default_factory=list)


@dataclass
class TokenSafety:
    safe: bool
    total_estimate: int
    limit: int


def fingerprint(text: str) -> str:
    return hashlib.md5((text[:120] + text[-120:]).encode("utf-8")).hexdigest()


def deduplicate(chunks: list[RetrievedChunk]) -> list[RetrievedChunk]:
    seen: set[str] = set()
    result = []
    for chunk in chunks:
        fp = fingerprint(chunk.text)
        if fp not in seen:
            seen.add(fp)
            result.append(chunk)
    return result


def fit_to_limit(chunks: list[RetrievedChunk], max_tokens: int) -> list[RetrievedChunk]:
    """按分数降序取片段，遇到第一个放不下的即停止"""
    available = max_tokens - FORMATTING_OVERHEAD
    selected = []
    used = 0
    for chunk in sorted(chunks, key=lambda c: c.score, reverse=True):
        tokens = estimate_tokens(chunk.text)
        if used + tokens > available:
            break
        selected.append(chunk)
        used += tokens
    return selected


def _format_default(chunks: list[RetrievedChunk], include_source: bool) -> str:
    parts = [
        f"[Source: {c.filename}]\n{c.text}" if include_source else c.text
        for c in chunks
    ]
    return f"{GROUNDING_INSTRUCTION}\n\n" + "\n\n---\n\n".join(parts)


def _format_detailed(chunks: list[RetrievedChunk], include_source: bool) -> str:
    parts = []
    for idx, c in enumerate(chunks, start=1):
        header = f"### Reference {idx} [{c.filename}]" if include_source else f"### Reference {idx}"
        parts.append(f"{header}\n{c.text}")
    return f"{GROUNDING_INSTRUCTION}\n\n" + "\n\n".join(parts)


def _format_minimal(chunks: list[RetrievedChunk]) -> str:
    return "\n\n".join(c.text for c in chunks)


def compose(
    result: RetrievalResult,
    max_tokens: int = 8000,
    include_source: bool = True,
    deduplication: bool = True,
    template: str = "default",
) -> ComposedContext:
    """
    组装参考上下文

    Args:
        result: 检索结果
        max_tokens: 上下文 token 预算（含 400 的格式开销）
        include_source: 是否标注来源文件名
        deduplication: 是否去重
        template: default / detailed / minimal，未知模板按 default 处理
    """
    if not result.chunks:
        return ComposedContext()

    chunks = deduplicate(result.chunks) if deduplication else list(result.chunks)
    selected = fit_to_limit(chunks, max_tokens)

    if template == "detailed":
        context = _format_detailed(selected, include_source)
    elif template == "minimal":
        context = _format_minimal(selected)
    else:
        context = _format_default(selected, include_source)

    sources = list(dict.fromkeys(c.filename for c in selected))
    return ComposedContext(
        context=context,
        chunks_used=len(selected),
        total_tokens=estimate_tokens(context),
        sources=sources,
    )


def build_assistant_context_message(context: str) -> str:
    return f"REFERENCE CONTEXT\n\n{context}"


def estimate_conversation_tokens(system: str, messages: list[dict[str, str]]) -> int:
    return estimate_tokens(system) + sum(estimate_tokens(m["content"]) for m in messages)


def trim_messages_to_limit(messages: list[dict[str, str]], max_pairs: int = 8) -> list[dict[str, str]]:
    """
    保留最近 max_pairs 轮对话

    user 后紧跟 assistant 组成一轮；单独的 user 自成一轮；
    没有前置 user 的 assistant 消息被丢弃。
    """
    pairs: list[list[dict[str, str]]] = []
    i = 0
    while i < len(messages):
        msg = messages[i]
        if msg["role"] == "user":
            nxt = messages[i + 1] if i + 1 < len(messages) else None
            if nxt is not None and nxt["role"] == "assistant":
                pairs.append([msg, nxt])
                i += 1
            else:
                pairs.append([msg])
        i += 1

    return [m for pair in pairs[-max_pairs:] for m in pair] if max_pairs > 0 else []


def ensure_token_safety(
    system: str,
    context_tokens: int,
    conversation_tokens: int,
    expected_reply_tokens: int = 4000,
) -> TokenSafety:
    total = estimate_tokens(system) + context_tokens + conversation_tokens + expected_reply_tokens
    return TokenSafety(safe=total < CONTEXT_WINDOW_LIMIT, total_estimate=total, limit=CONTEXT_WINDOW_LIMIT)
