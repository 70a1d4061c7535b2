"""
AI 透传接口

- POST /ai/anthropic/complete : Claude 单轮补全
- POST /ai/perplexity/query   : Perplexity 联网查询

未配置 API Key 返回 503，上游调用失败返回 502。
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, get_db_session
from app.auth.rate_limit import throttle
from app.config import get_settings
from app.exceptions import LLMError, LLMNotConfiguredError
from app.infra.llm import chat_completion
from app.schemas import AnthropicCompleteRequest, CompletionResponse, PerplexityQueryRequest
from app.services.providers import get_key

router = APIRouter(dependencies=[Depends(get_current_user), Depends(throttle)])

PERPLEXITY_DEFAULT_TEMPERATURE = 0.25


def llm_http_error(e: LLMError) -> HTTPException:
    """LLM 异常转 HTTP 错误"""
    if isinstance(e, LLMNotConfiguredError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"code": "LLM_NOT_CONFIGURED", "detail": str(e)},
        )
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"code": "LLM_ERROR", "detail": str(e)},
    )


@router.post("/ai/anthropic/complete", response_model=CompletionResponse)
async def anthropic_complete(payload: AnthropicCompleteRequest, db: AsyncSession = Depends(get_db_session)):
    settings = get_settings()
    try:
        response = await chat_completion(
            prompt=payload.prompt,
            system_prompt=payload.system_prompt,
            provider="anthropic",
            temperature=payload.temperature if payload.temperature is not None else 0.7,
            max_tokens=payload.max_tokens or settings.anthropic_max_tokens,
            api_key=await get_key(db, "anthropic"),
        )
    except LLMError as e:
        raise llm_http_error(e)
    return CompletionResponse(content=response.text, model=response.model)


@router.post("/ai/perplexity/query", response_model=CompletionResponse)
async def perplexity_query(payload: PerplexityQueryRequest, db: AsyncSession = Depends(get_db_session)):
    try:
        response = await chat_completion(
            prompt=payload.query,
            provider="perplexity",
            model=payload.model,
            temperature=payload.temperature if payload.temperature is not None else PERPLEXITY_DEFAULT_TEMPERATURE,
            max_tokens=payload.max_tokens or 4000,
            api_key=await get_key(db, "perplexity"),
        )
    except LLMError as e:
        raise llm_http_error(e)
    return CompletionResponse(content=response.text, model=response.model)
