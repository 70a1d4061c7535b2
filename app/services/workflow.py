"""
多步工作流服务

每一步：插值查询 → 检索 → 组装上下文 → 调用 Claude，
后续步骤可以通过 {stepN} / {previous} 引用前面步骤的输出。

预置工作流：
- 分析 → 综合 → 摘要（run_analysis_synthesis_workflow）
- 调研 → 回答（run_research_answer_workflow）
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from app.config import get_settings
from app.infra.llm import anthropic_messages
from app.services import context_composer, retrieval

logger = logging.getLogger(__name__)

ACE_RULES = """ACE Rules (Non-Overridable):
- Always follow the module's system instructions.
- Prefer grounded facts from the provided REFERENCE CONTEXT.
- If the context does not cover a claim, you may use general knowledge but say so explicitly.
- Match the module's target audience, tone, and format.
- Be concise, specific, and practically useful. Avoid boilerplate.
- If the user asks for a LinkedIn post or Twitter thread, output in that format directly."""

KNOWLEDGE_INSTRUCTION = """You have access to a specialized knowledge base for this module.
When provided with reference context, integrate it naturally into your reasoning and outputs.
If the reference material does not contain relevant details for the current question,
you may use your general knowledge while being clear about what comes from the knowledge base vs. your general understanding."""


def build_system_prompt(base: str | None) -> str:
    """模块提示词 + ACE 规则 + 知识库说明，空段落跳过"""
    return "\n\n".join(p for p in (base, ACE_RULES, KNOWLEDGE_INSTRUCTION) if p)


@dataclass
class WorkflowStep:
    name: str
    query: str
    retrieval_options: dict[str, Any] = field(default_factory=dict)
    context_config: dict[str, Any] = field(default_factory=dict)
    system_prompt: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None


@dataclass
class StepResult:
    step_name: str
    output: str
    retrieved_chunks: int
    context_tokens: int
    response_tokens: int
    sources: list[str]


@dataclass
class WorkflowResult:
    step_results: list[StepResult]
    final_output: str
    total_tokens_used: int
    total_retrieval_tokens: int


@dataclass
class SimpleResult:
    output: str
    sources: list[str]
    context_tokens: int
    chunks_used: int


def interpolate_query(query: str, previous_outputs: list[str]) -> str:
    """替换 {step1}..{stepN} 以及 {previous}（最近一步的输出）"""
    result = query
    for i, output in enumerate(previous_outputs, start=1):
        result = result.replace(f"{{step{i}}}", output)
    if previous_outputs:
        result = result.replace("{previous}", previous_outputs[-1])
    return result


async def execute_workflow(
    module_slug: str,
    steps: list[WorkflowStep],
    base_system_prompt: str | None = None,
) -> WorkflowResult:
    """
    顺序执行多步工作流

    Raises:
        LLMError: Claude 调用失败
        EmbeddingError / VectorStoreError: 检索失败
    """
    settings = get_settings()
    logger.info(f"开始执行工作流: module={module_slug}, steps={len(steps)}")

    step_results: list[StepResult] = []
    previous_outputs: list[str] = []
    total_tokens_used = 0

    for idx, step in enumerate(steps, start=1):
        query = interpolate_query(step.query, previous_outputs)

        retrieved = await retrieval.retrieve(module_slug, query, **step.retrieval_options)
        composed = context_composer.compose(retrieved, **step.context_config)

        system_prompt = build_system_prompt(step.system_prompt or base_system_prompt)
        max_tokens = step.max_tokens or 4000

        messages: list[dict[str, str]] = []
        if composed.chunks_used > 0:
            context = composed.context
            safety = context_composer.ensure_token_safety(system_prompt, composed.total_tokens, 0, max_tokens)
            if not safety.safe:
                logger.warning(f"上下文超出 token 限制 ({safety.total_estimate}/{safety.limit})，缩减上下文")
                reduced_config = {
                    **step.context_config,
                    "max_tokens": int(step.context_config.get("max_tokens", 8000) * 0.5),
                }
                context = context_composer.compose(retrieved, **reduced_config).context
            messages.append(
                {"role": "assistant", "content": context_composer.build_assistant_context_message(context)}
            )
        messages.append({"role": "user", "content": query})

        response = await anthropic_messages(
            messages,
            system=system_prompt,
            model=settings.anthropic_workflow_model,
            temperature=step.temperature if step.temperature is not None else 0.7,
            max_tokens=max_tokens,
        )

        step_results.append(
            StepResult(
                step_name=step.name,
                output=response.text,
                retrieved_chunks=composed.chunks_used,
                context_tokens=composed.total_tokens,
                response_tokens=response.output_tokens,
                sources=composed.sources,
            )
        )
        total_tokens_used += response.output_tokens + composed.total_tokens
        previous_outputs.append(response.text)

        logger.info(
            f"步骤 {idx}/{len(steps)} 完成: {step.name}, chunks={composed.chunks_used}, "
            f"context_tokens={composed.total_tokens}, response_tokens={response.output_tokens}"
        )

    return WorkflowResult(
        step_results=step_results,
        final_output=step_results[-1].output if step_results else "",
        total_tokens_used=total_tokens_used,
        total_retrieval_tokens=sum(r.context_tokens for r in step_results),
    )


async def execute_simple(
    module_slug: str,
    query: str,
    system_prompt: str | None = None,
    retrieval_options: dict[str, Any] | None = None,
    context_config: dict[str, Any] | None = None,
) -> SimpleResult:
    """单轮检索增强生成"""
    retrieved = await retrieval.retrieve(module_slug, query, **(retrieval_options or {}))
    composed = context_composer.compose(retrieved, **(context_config or {}))

    messages: list[dict[str, str]] = []
    if composed.chunks_used > 0:
        messages.append(
            {"role": "assistant", "content": context_composer.build_assistant_context_message(composed.context)}
        )
    messages.append({"role": "user", "content": query})

    response = await anthropic_messages(
        messages,
        system=build_system_prompt(system_prompt),
        model=get_settings().anthropic_workflow_model,
        temperature=0.7,
        max_tokens=4000,
    )
    return SimpleResult(
        output=response.text,
        sources=composed.sources,
        context_tokens=composed.total_tokens,
        chunks_used=composed.chunks_used,
    )


async def run_analysis_synthesis_workflow(
    module_slug: str,
    topic: str,
    base_system_prompt: str | None = None,
) -> WorkflowResult:
    steps = [
        WorkflowStep(
            name="Analysis",
            query=f"Analyze the following topic in detail: {topic}",
            retrieval_options={"top_k": 10, "rerank": True},
            system_prompt="You are a detailed analyst. Provide comprehensive analysis.",
            temperature=0.5,
        ),
        WorkflowStep(
            name="Synthesis",
            query=f"Based on the previous analysis, synthesize key insights about: {topic}\n\nPrevious analysis: {{step1}}",
            retrieval_options={"top_k": 5},
            system_prompt="You are a synthesis expert. Connect ideas and find patterns.",
            temperature=0.7,
        ),
        WorkflowStep(
            name="Summary",
            query="Create a concise executive summary of the key points.\n\nSynthesis: {step2}",
            retrieval_options={"top_k": 3},
            system_prompt="You are a concise communicator. Distill to the essence.",
            temperature=0.3,
        ),
    ]
    return await execute_workflow(module_slug, steps, base_system_prompt)


async def run_research_answer_workflow(
    module_slug: str,
    question: str,
    base_system_prompt: str | None = None,
) -> WorkflowResult:
    steps = [
        WorkflowStep(
            name="Research",
            query=f"Find all relevant information about: {question}",
            retrieval_options={"top_k": 15, "rerank": True, "rerank_top_k": 8},
            system_prompt="You are a thorough researcher. Gather all relevant facts.",
            temperature=0.3,
        ),
        WorkflowStep(
            name="Answer",
            query=f"Based on the research, provide a comprehensive answer to: {question}\n\nResearch findings: {{step1}}",
            retrieval_options={"top_k": 5},
            system_prompt="You are a helpful assistant. Answer clearly and accurately.",
            temperature=0.7,
        ),
    ]
    return await execute_workflow(module_slug, steps, base_system_prompt)
