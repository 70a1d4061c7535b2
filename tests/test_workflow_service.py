"""
工作流服务单元测试

测试 app/services/workflow.py：
- 步骤输出插值
- 系统提示词拼装
- 多步执行的 token 统计与上下文注入
"""

import pytest
from unittest.mock import AsyncMock, patch

from app.infra.llm import LLMResponse
from app.services.retrieval import RetrievalResult, RetrievedChunk
from app.services.workflow import (
    ACE_RULES,
    KNOWLEDGE_INSTRUCTION,
    WorkflowStep,
    build_system_prompt,
    execute_simple,
    execute_workflow,
    interpolate_query,
    run_research_answer_workflow,
)


def _retrieval(*texts: str) -> RetrievalResult:
    return RetrievalResult(
        chunks=[RetrievedChunk(text=t, score=0.9, filename="kb.txt") for t in texts],
        total_retrieved=len(texts),
        query="q",
    )


class TestHelpers:
    """测试插值与提示词拼装"""

    def test_interpolate_steps_and_previous(self):
        query = "Combine {step1} and {step2}; last was {previous}"
        assert interpolate_query(query, ["A", "B"]) == "Combine A and B; last was B"

    def test_interpolate_without_outputs(self):
        assert interpolate_query("Use {previous}", []) == "Use {previous}"

    def test_system_prompt_with_base(self):
        prompt = build_system_prompt("You write hooks.")
        assert prompt == f"You write hooks.\n\n{ACE_RULES}\n\n{KNOWLEDGE_INSTRUCTION}"

    def test_system_prompt_without_base(self):
        assert build_system_prompt(None) == f"{ACE_RULES}\n\n{KNOWLEDGE_INSTRUCTION}"


class TestExecuteWorkflow:
    """测试多步工作流执行"""

    @pytest.mark.asyncio
    async def test_steps_chain_outputs(self):
        mock_llm = AsyncMock(side_effect=[
            LLMResponse(text="analysis result", model="m", output_tokens=10),
            LLMResponse(text="final answer", model="m", output_tokens=20),
        ])
        steps = [
            WorkflowStep(name="One", query="Analyze topic"),
            WorkflowStep(name="Two", query="Refine: {step1}"),
        ]
        with patch("app.services.retrieval.retrieve", AsyncMock(return_value=_retrieval("fact one"))) as mock_retrieve, \
             patch("app.services.workflow.anthropic_messages", mock_llm):
            result = await execute_workflow("blog-post", steps, "Base prompt")

        assert mock_retrieve.call_args_list[1].args[1] == "Refine: analysis result"
        assert result.final_output == "final answer"
        assert [s.step_name for s in result.step_results] == ["One", "Two"]

        context_tokens = result.step_results[0].context_tokens
        assert context_tokens > 0
        assert result.total_retrieval_tokens == context_tokens * 2
        assert result.total_tokens_used == 10 + 20 + context_tokens * 2

        messages = mock_llm.call_args_list[0].args[0]
        assert messages[0]["role"] == "assistant"
        assert messages[0]["content"].startswith("REFERENCE CONTEXT")
        assert messages[-1] == {"role": "user", "content": "Analyze topic"}
        assert mock_llm.call_args_list[0].kwargs["system"].startswith("Base prompt")

    @pytest.mark.asyncio
    async def test_no_context_sends_only_query(self):
        mock_llm = AsyncMock(return_value=LLMResponse(text="out", model="m", output_tokens=1))
        with patch("app.services.retrieval.retrieve", AsyncMock(return_value=_retrieval())), \
             patch("app.services.workflow.anthropic_messages", mock_llm):
            result = await execute_workflow("blog-post", [WorkflowStep(name="Only", query="Hi")])

        assert mock_llm.call_args.args[0] == [{"role": "user", "content": "Hi"}]
        assert result.total_retrieval_tokens == 0
        assert result.step_results[0].sources == []

    @pytest.mark.asyncio
    async def test_step_settings_passed_to_llm(self):
        mock_llm = AsyncMock(return_value=LLMResponse(text="out", model="m"))
        step = WorkflowStep(name="S", query="Q", system_prompt="Step prompt", temperature=0.2, max_tokens=123)
        with patch("app.services.retrieval.retrieve", AsyncMock(return_value=_retrieval())), \
             patch("app.services.workflow.anthropic_messages", mock_llm):
            await execute_workflow("blog-post", [step], "Base prompt")

        kwargs = mock_llm.call_args.kwargs
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 123
        assert kwargs["system"].startswith("Step prompt")

    @pytest.mark.asyncio
    async def test_oversized_context_is_reduced(self):
        """上下文超出窗口时按一半的 token 预算重新组装"""
        retrieved = RetrievalResult(
            chunks=[
                RetrievedChunk(text="a" * 400000, score=0.9, filename="big-a.txt"),
                RetrievedChunk(text="b" * 400000, score=0.8, filename="big-b.txt"),
            ],
            total_retrieved=2,
            query="q",
        )
        step = WorkflowStep(name="Big", query="Summarize", context_config={"max_tokens": 400000})
        mock_llm = AsyncMock(return_value=LLMResponse(text="out", model="m"))
        with patch("app.services.retrieval.retrieve", AsyncMock(return_value=retrieved)), \
             patch("app.services.workflow.anthropic_messages", mock_llm):
            result = await execute_workflow("blog-post", [step])

        # 完整上下文两个片段都放得下，超过 190000 的窗口
        assert result.step_results[0].retrieved_chunks == 2
        assert result.step_results[0].context_tokens > 190000

        context_message = mock_llm.call_args.args[0][0]
        assert context_message["role"] == "assistant"
        assert "a" * 1000 in context_message["content"]
        assert "b" * 1000 not in context_message["content"]
        assert "[Source: big-b.txt]" not in context_message["content"]

    @pytest.mark.asyncio
    async def test_research_answer_has_two_steps(self):
        mock_llm = AsyncMock(return_value=LLMResponse(text="out", model="m"))
        with patch("app.services.retrieval.retrieve", AsyncMock(return_value=_retrieval())) as mock_retrieve, \
             patch("app.services.workflow.anthropic_messages", mock_llm):
            result = await run_research_answer_workflow("blog-post", "What is ACE?")

        assert [s.step_name for s in result.step_results] == ["Research", "Answer"]
        first_kwargs = mock_retrieve.call_args_list[0].kwargs
        assert first_kwargs == {"top_k": 15, "rerank": True, "rerank_top_k": 8}


class TestExecuteSimple:
    """测试单轮检索增强"""

    @pytest.mark.asyncio
    async def test_simple(self):
        mock_llm = AsyncMock(return_value=LLMResponse(text="answer", model="m"))
        with patch("app.services.retrieval.retrieve", AsyncMock(return_value=_retrieval("fact"))), \
             patch("app.services.workflow.anthropic_messages", mock_llm):
            result = await execute_simple("blog-post", "question")

        assert result.output == "answer"
        assert result.sources == ["kb.txt"]
        assert result.chunks_used == 1
        assert result.context_tokens > 0
