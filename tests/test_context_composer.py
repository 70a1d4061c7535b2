"""
上下文组装单元测试

测试 app/services/context_composer.py：
- 去重、token 预算截取
- 三种模板
- 对话裁剪与 token 安全检查
"""

from app.services.context_composer import (
    CONTEXT_WINDOW_LIMIT,
    GROUNDING_INSTRUCTION,
    build_assistant_context_message,
    compose,
    deduplicate,
    ensure_token_safety,
    estimate_conversation_tokens,
    fit_to_limit,
    trim_messages_to_limit,
)
from app.services.retrieval import RetrievalResult, RetrievedChunk


def _chunk(text: str, score: float = 0.9, filename: str = "guide.txt") -> RetrievedChunk:
    return RetrievedChunk(text=text, score=score, filename=filename, file_id="f1")


def _result(*chunks: RetrievedChunk) -> RetrievalResult:
    return RetrievalResult(chunks=list(chunks), total_retrieved=len(chunks), query="q")


class TestCompose:
    """测试上下文组装"""

    def test_empty_result(self):
        composed = compose(_result())
        assert composed.context == ""
        assert composed.chunks_used == 0
        assert composed.total_tokens == 0
        assert composed.sources == []

    def test_default_template(self):
        composed = compose(_result(_chunk("first fact", filename="a.txt"), _chunk("second fact", filename="b.txt")))

        assert composed.context.startswith(GROUNDING_INSTRUCTION)
        assert "[Source: a.txt]\nfirst fact" in composed.context
        assert "\n\n---\n\n" in composed.context
        assert composed.chunks_used == 2
        assert composed.sources == ["a.txt", "b.txt"]
        assert composed.total_tokens > 0

    def test_default_template_without_source(self):
        composed = compose(_result(_chunk("first fact")), include_source=False)
        assert "[Source:" not in composed.context
        assert "first fact" in composed.context

    def test_detailed_template(self):
        composed = compose(_result(_chunk("first fact", filename="a.txt")), template="detailed")
        assert "### Reference 1 [a.txt]\nfirst fact" in composed.context

    def test_minimal_template(self):
        composed = compose(_result(_chunk("one", 0.9), _chunk("two", 0.8)), template="minimal")
        assert composed.context == "one\n\ntwo"

    def test_unknown_template_falls_back_to_default(self):
        composed = compose(_result(_chunk("fact")), template="fancy")
        assert composed.context.startswith(GROUNDING_INSTRUCTION)

    def test_sources_are_unique(self):
        composed = compose(_result(_chunk("one", filename="a.txt"), _chunk("two", filename="a.txt")))
        assert composed.sources == ["a.txt"]


class TestDeduplication:
    """测试去重"""

    def test_duplicate_text_removed(self):
        chunks = [_chunk("same text"), _chunk("same text", 0.5), _chunk("other")]
        assert [c.text for c in deduplicate(chunks)] == ["same text", "other"]

    def test_compose_without_deduplication(self):
        result = _result(_chunk("same text"), _chunk("same text", 0.5))
        assert compose(result, deduplication=False).chunks_used == 2
        assert compose(result, deduplication=True).chunks_used == 1


class TestFitToLimit:
    """测试 token 预算截取"""

    def test_highest_score_first(self):
        chunks = [_chunk("low " * 60, 0.2), _chunk("high " * 60, 0.9)]
        # 可用预算 = 500 - 400 = 100 tokens，每个片段约 60~75 tokens
        selected = fit_to_limit(chunks, max_tokens=500)
        assert len(selected) == 1
        assert selected[0].score == 0.9

    def test_stops_at_first_overflow(self):
        chunks = [_chunk("a" * 200, 0.9), _chunk("b" * 2000, 0.8), _chunk("c" * 40, 0.7)]
        selected = fit_to_limit(chunks, max_tokens=600)
        assert [c.score for c in selected] == [0.9]

    def test_budget_smaller_than_overhead(self):
        assert fit_to_limit([_chunk("text")], max_tokens=300) == []


class TestConversation:
    """测试多轮对话裁剪与 token 估算"""

    def test_keeps_last_pairs(self):
        messages = []
        for i in range(10):
            messages.append({"role": "user", "content": f"q{i}"})
            messages.append({"role": "assistant", "content": f"a{i}"})

        trimmed = trim_messages_to_limit(messages, max_pairs=8)
        assert len(trimmed) == 16
        assert trimmed[0] == {"role": "user", "content": "q2"}
        assert trimmed[-1] == {"role": "assistant", "content": "a9"}

    def test_orphan_assistant_dropped(self):
        messages = [
            {"role": "assistant", "content": "hello"},
            {"role": "user", "content": "hi"},
        ]
        assert trim_messages_to_limit(messages) == [{"role": "user", "content": "hi"}]

    def test_trailing_user_kept(self):
        messages = [
            {"role": "user", "content": "q1"},
            {"role": "assistant", "content": "a1"},
            {"role": "user", "content": "q2"},
        ]
        trimmed = trim_messages_to_limit(messages, max_pairs=1)
        assert trimmed == [{"role": "user", "content": "q2"}]

    def test_estimate_conversation_tokens(self):
        tokens = estimate_conversation_tokens("abcd", [{"role": "user", "content": "abcdefgh"}])
        assert tokens == 3

    def test_assistant_context_message(self):
        assert build_assistant_context_message("ctx") == "REFERENCE CONTEXT\n\nctx"


class TestTokenSafety:
    """测试 token 安全检查"""

    def test_safe(self):
        safety = ensure_token_safety("system", context_tokens=1000, conversation_tokens=500)
        assert safety.safe is True
        assert safety.limit == CONTEXT_WINDOW_LIMIT
        assert safety.total_estimate == 2 + 1000 + 500 + 4000

    def test_unsafe(self):
        safety = ensure_token_safety("system", context_tokens=CONTEXT_WINDOW_LIMIT, conversation_tokens=0)
        assert safety.safe is False
