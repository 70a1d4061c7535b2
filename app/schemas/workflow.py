"""工作流相关的请求/响应模型"""

from pydantic import Field

from app.schemas.base import CamelModel


class SimpleWorkflowRequest(CamelModel):
    query: str = Field(..., min_length=1)
    system_prompt: str | None = None


class AnalysisSynthesisRequest(CamelModel):
    topic: str = Field(..., min_length=1)


class ResearchAnswerRequest(CamelModel):
    question: str = Field(..., min_length=1)


class SimpleWorkflowResponse(CamelModel):
    output: str
    sources: list[str]
    context_tokens: int
    chunks_used: int


class StepResultResponse(CamelModel):
    step_name: str
    output: str
    retrieved_chunks: int
    context_tokens: int
    response_tokens: int
    sources: list[str]


class WorkflowResponse(CamelModel):
    step_results: list[StepResultResponse]
    final_output: str
    total_tokens_used: int
    total_retrieval_tokens: int
