"""
工作流接口

在模块知识库上执行单步或多步检索增强生成。
模块存在时使用其系统提示词作为基础提示词。
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db_session
from app.api.routes.ai import llm_http_error
from app.auth.rate_limit import throttle
from app.exceptions import EmbeddingError, LLMError, VectorStoreError
from app.schemas import (
    AnalysisSynthesisRequest,
    ResearchAnswerRequest,
    SimpleWorkflowRequest,
    SimpleWorkflowResponse,
    WorkflowResponse,
)
from app.services import workflow as workflow_service
from app.services.modules import find_by_slug

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(get_current_user), Depends(throttle)])


async def _base_prompt(db: AsyncSession, module_slug: str) -> str | None:
    module = await find_by_slug(db, module_slug)
    return module.system_prompt if module else None


def _workflow_error(e: Exception) -> HTTPException:
    if isinstance(e, LLMError):
        return llm_http_error(e)
    logger.error(f"工作流检索失败: {e}")
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"code": "LLM_ERROR", "detail": str(e)},
    )


@router.post("/workflows/{module_slug}/simple", response_model=SimpleWorkflowResponse)
async def run_simple(
    module_slug: str,
    payload: SimpleWorkflowRequest,
    db: AsyncSession = Depends(get_db_session),
):
    system_prompt = payload.system_prompt or await _base_prompt(db, module_slug)
    try:
        return await workflow_service.execute_simple(module_slug, payload.query, system_prompt)
    except (LLMError, EmbeddingError, VectorStoreError) as e:
        raise _workflow_error(e)


@router.post("/workflows/{module_slug}/analysis-synthesis", response_model=WorkflowResponse)
async def run_analysis_synthesis(
    module_slug: str,
    payload: AnalysisSynthesisRequest,
    db: AsyncSession = Depends(get_db_session),
):
    """分析 → 综合 → 摘要"""
    try:
        return await workflow_service.run_analysis_synthesis_workflow(
            module_slug, payload.topic, await _base_prompt(db, module_slug)
        )
    except (LLMError, EmbeddingError, VectorStoreError) as e:
        raise _workflow_error(e)


@router.post("/workflows/{module_slug}/research-answer", response_model=WorkflowResponse)
async def run_research_answer(
    module_slug: str,
    payload: ResearchAnswerRequest,
    db: AsyncSession = Depends(get_db_session),
):
    """调研 → 回答"""
    try:
        return await workflow_service.run_research_answer_workflow(
            module_slug, payload.question, await _base_prompt(db, module_slug)
        )
    except (LLMError, EmbeddingError, VectorStoreError) as e:
        raise _workflow_error(e)
