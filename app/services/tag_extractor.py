"""
客户细分标签提取

让 Claude 根据客户资料给出 3-7 个细分领域标签。
任何失败（包括未配置 API Key）都返回空列表，不影响客户保存。
"""

import json
import logging
import re

from app.config import get_settings
from app.exceptions import LLMError
from app.infra.llm import anthropic_messages

logger = logging.getLogger(__name__)

TAGS_ARRAY_RE = re.compile(r'\[\s*"[^"]*"(?:\s*,\s*"[^"]*")*\s*\]')

TAG_PROMPT = """You are a professional tag extractor for a content marketing platform. I'll provide you with information about a client, and your task is to extract 3-7 specific niche tags that accurately represent their business domain, target audience, and content strategy.

The tags should be:
- Specific and descriptive (e.g., "SaaS Marketing" is better than just "Marketing")
- Relevant to content strategy
- Useful for categorizing content
- Between 1-3 words each

Here's the client information:

Name: {name}

Business Information:
{business_info}

Goals:
{goals}
{extra}
Return ONLY a JSON array of strings containing the niche tags, with no additional explanation. For example:
["B2B SaaS", "FinTech", "Thought Leadership", "Executive Branding", "LinkedIn Marketing"]"""


def build_tag_prompt(
    name: str,
    business_info: str | None,
    goals: str | None,
    voice: str | None = None,
    feedback: str | None = None,
) -> str:
    extra = ""
    if voice:
        extra += f"\nVoice Sample: {voice}\n"
    if feedback:
        extra += f"\nFeedback: {feedback}\n"
    return TAG_PROMPT.format(
        name=name,
        business_info=business_info or "",
        goals=goals or "",
        extra=extra,
    )


def parse_tags(text: str) -> list[str]:
    match = TAGS_ARRAY_RE.search(text)
    if not match:
        return []
    try:
        tags = json.loads(match.group(0))
    except json.JSONDecodeError:
        return []
    return [t for t in tags if isinstance(t, str)]


async def extract_niche_tags(
    name: str,
    business_info: str | None,
    goals: str | None,
    voice: str | None = None,
    feedback: str | None = None,
    api_key: str | None = None,
) -> list[str]:
    try:
        response = await anthropic_messages(
            [{"role": "user", "content": build_tag_prompt(name, business_info, goals, voice, feedback)}],
            model=get_settings().anthropic_workflow_model,
            max_tokens=1000,
            api_key=api_key,
        )
    except LLMError as e:
        logger.warning(f"细分标签提取失败: {e}")
        return []

    return parse_tags(response.text)
