"""
LLM 客户端模块

支持多种 LLM 提供商：
- Anthropic (Claude)            : 聊天、重排、工作流、标签提取
- OpenAI / Perplexity / Grok    : OpenAI 兼容接口
- Google Gemini                 : REST 接口（httpx）

使用示例：
    from app.infra.llm import anthropic_messages, chat_completion

    # Claude 多轮消息
    resp = await anthropic_messages(
        messages=[{"role": "user", "content": "写一条 LinkedIn 帖子"}],
        system="你是一个专业的内容写手",
        temperature=0.7,
    )
    print(resp.text)

    # 按提供商路由
    resp = await chat_completion("总结以下内容", provider="perplexity")
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import httpx
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI

from app.config import get_settings
from app.exceptions import LLMError, LLMNotConfiguredError

logger = logging.getLogger(__name__)

OPENAI_COMPATIBLE_PROVIDERS = ("openai", "perplexity", "grok")


@dataclass
class LLMResponse:
    """LLM 调用结果"""
    text: str
    model: str
    output_tokens: int = 0


@lru_cache(maxsize=8)
def _get_openai_compatible_client(api_key: str | None, base_url: str | None) -> AsyncOpenAI:
    """获取 OpenAI 兼容客户端"""
    return AsyncOpenAI(
        api_key=api_key,
        base_url=base_url,
        timeout=120.0,
    )


@lru_cache(maxsize=8)
def _get_anthropic_client(api_key: str) -> AsyncAnthropic:
    """获取 Anthropic 客户端"""
    return AsyncAnthropic(api_key=api_key, timeout=120.0)


def _extract_anthropic_text(response: Any) -> str:
    """取第一个 text 类型的内容块"""
    for block in response.content or []:
        if getattr(block, "type", None) == "text":
            return block.text
    raise LLMError("Unexpected response type from Claude")


async def anthropic_messages(
    messages: list[dict[str, str]],
    system: str | None = None,
    model: str | None = None,
    temperature: float = 0.7,
    max_tokens: int | None = None,
    api_key: str | None = None,
) -> LLMResponse:
    """
    调用 Claude Messages API

    Args:
        messages: [{"role": "user"|"assistant", "content": "..."}]
        system: 系统提示词
        model: 模型名，默认 settings.anthropic_model
        temperature: 采样温度
        max_tokens: 最大生成 token 数，默认 settings.anthropic_max_tokens
        api_key: 覆盖配置中的 API Key（来自提供商表）

    Raises:
        LLMNotConfiguredError: 未配置 API Key
        LLMError: 调用失败（保留原始错误信息）
    """
    settings = get_settings()
    key = api_key or settings.anthropic_api_key
    if not key:
        raise LLMNotConfiguredError("ANTHROPIC_API_KEY 未配置")

    model = model or settings.anthropic_model
    params: dict[str, Any] = {
        "model": model,
        "max_tokens": max_tokens or settings.anthropic_max_tokens,
        "temperature": temperature,
        "messages": messages,
    }
    if system:
        params["system"] = system

    try:
        response = await _get_anthropic_client(key).messages.create(**params)
    except Exception as e:
        logger.error(f"Claude 调用失败 ({model}): {e}")
        raise LLMError(f"Claude API call failed: {e}") from e

    usage = getattr(response, "usage", None)
    return LLMResponse(
        text=_extract_anthropic_text(response),
        model=getattr(response, "model", model),
        output_tokens=getattr(usage, "output_tokens", 0) or 0,
    )


async def chat_completion(
    prompt: str | None = None,
    system_prompt: str | None = None,
    provider: str = "anthropic",
    model: str | None = None,
    temperature: float = 0.7,
    max_tokens: int = 4000,
    messages: list[dict[str, str]] | None = None,
    api_key: str | None = None,
) -> LLMResponse:
    """
    按提供商路由的对话补全

    Args:
        prompt: 单轮用户输入（与 messages 二选一）
        system_prompt: 系统提示词
        provider: anthropic / openai / perplexity / grok / google
        model: 模型名，默认取提供商配置
        messages: 多轮消息
        api_key: 覆盖配置中的 API Key

    Returns:
        LLMResponse: 生成结果
    """
    settings = get_settings()
    config = settings.get_provider_config(provider)
    if api_key:
        config["api_key"] = api_key
    if model:
        config["model"] = model

    if messages is None:
        messages = [{"role": "user", "content": prompt or ""}]

    if config["provider"] == "anthropic":
        return await anthropic_messages(
            messages,
            system=system_prompt,
            model=config["model"],
            temperature=temperature,
            max_tokens=max_tokens,
            api_key=config["api_key"],
        )

    if not config.get("api_key"):
        raise LLMNotConfiguredError(f"{provider.upper()}_API_KEY 未配置")

    try:
        if config["provider"] == "google":
            return await _gemini_chat(messages, system_prompt, config, temperature, max_tokens)
        return await _openai_compatible_chat(messages, system_prompt, config, temperature, max_tokens)
    except LLMError:
        raise
    except Exception as e:
        logger.error(f"LLM 调用失败 ({provider}): {e}")
        raise LLMError(f"{provider} API call failed: {e}") from e


async def _openai_compatible_chat(
    messages: list[dict[str, str]],
    system_prompt: str | None,
    config: dict[str, Any],
    temperature: float,
    max_tokens: int,
) -> LLMResponse:
    """OpenAI 兼容 API Chat（OpenAI / Perplexity / Grok）"""
    client = _get_openai_compatible_client(config.get("api_key"), config.get("base_url"))

    payload = []
    if system_prompt:
        payload.append({"role": "system", "content": system_prompt})
    payload.extend(messages)

    response = await client.chat.completions.create(
        model=config["model"],
        messages=payload,
        temperature=temperature,
        max_tokens=max_tokens,
    )
    usage = getattr(response, "usage", None)
    return LLMResponse(
        text=response.choices[0].message.content or "",
        model=response.model or config["model"],
        output_tokens=getattr(usage, "completion_tokens", 0) or 0,
    )


async def _gemini_chat(
    messages: list[dict[str, str]],
    system_prompt: str | None,
    config: dict[str, Any],
    temperature: float,
    max_tokens: int,
) -> LLMResponse:
    """Gemini API Chat"""
    url = f"{config['base_url']}/models/{config['model']}:generateContent"

    contents = []
    if system_prompt:
        contents.append({"role": "user", "parts": [{"text": f"System: {system_prompt}"}]})
        contents.append({"role": "model", "parts": [{"text": "Understood."}]})
    for msg in messages:
        role = "model" if msg["role"] == "assistant" else "user"
        contents.append({"role": role, "parts": [{"text": msg["content"]}]})

    async with httpx.AsyncClient(timeout=120.0) as client:
        response = await client.post(
            url,
            params={"key": config["api_key"]},
            json={
                "contents": contents,
                "generationConfig": {
                    "temperature": temperature,
                    "maxOutputTokens": max_tokens,
                },
            },
        )
        response.raise_for_status()
        result = response.json()

    candidates = result.get("candidates") or []
    if not candidates:
        raise LLMError("Gemini 返回结果为空")
    parts = candidates[0].get("content", {}).get("parts", [])
    usage = result.get("usageMetadata", {})
    return LLMResponse(
        text="".join(p.get("text", "") for p in parts),
        model=config["model"],
        output_tokens=usage.get("candidatesTokenCount", 0),
    )
