"""
段落切分器

按段落边界切分文本，保持语义完整：
- 空行、Markdown 标题、编号列表、"Label: " 开头的行都视为段落边界
- 超长段落按句子切分后贪心打包
- 相邻片段之间保留词级重叠（overlap_tokens * 0.75 个词）
"""

import math
import re

from app.pipeline.base import BaseChunkerOperator, ChunkPiece, estimate_tokens
from app.pipeline.registry import register_operator

PARAGRAPH_SPLIT = re.compile(r"\n{2,}|^#{1,6}\s.+$|\n\d+\.\s+|\n[A-Z][a-zA-Z]+:\s", re.MULTILINE)
SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+|[^.!?]+$")


def split_paragraphs(text: str) -> list[str]:
    clean = text.strip()
    if not clean:
        return []
    parts = PARAGRAPH_SPLIT.split(clean)
    return [p.strip() for p in parts if p and p.strip()]


def split_sentences(text: str) -> list[str]:
    sentences = SENTENCE_RE.findall(text) or [text]
    return [s.strip() for s in sentences if s.strip()]


def overlap_text(text: str, overlap_tokens: int) -> str:
    """取文本末尾 floor(overlap_tokens * 0.75) 个词"""
    n_words = math.floor(overlap_tokens * 0.75)
    if n_words <= 0:
        return ""
    return " ".join(text.split()[-n_words:])


@register_operator("chunker", "paragraph")
class ParagraphChunker(BaseChunkerOperator):
    """
    段落切分器

    适合营销文案、知识库文档等以段落组织的文本。
    """
    name = "paragraph"
    kind = "chunker"

    def __init__(self, max_tokens: int = 400, min_tokens: int = 50, overlap_tokens: int = 80):
        """
        Args:
            max_tokens: 单个片段最大 token 数
            min_tokens: 小于该值的片段会被丢弃
            overlap_tokens: 相邻片段重叠的 token 数（按词近似）
        """
        self.max_tokens = max_tokens
        self.min_tokens = min_tokens
        self.overlap_tokens = overlap_tokens

    def chunk(self, text: str, metadata: dict | None = None) -> list[ChunkPiece]:
        base_meta = metadata or {}
        pieces: list[ChunkPiece] = []

        def emit(buffer: str, tokens: int, start: int) -> None:
            pieces.append(
                ChunkPiece(
                    text=buffer.strip(),
                    metadata={
                        **base_meta,
                        "tokens": tokens,
                        "start_offset": start,
                        "end_offset": start + len(buffer),
                    },
                )
            )

        current = ""
        current_tokens = 0
        current_start = 0
        cursor = 0

        for paragraph in split_paragraphs(text):
            para_start = text.find(paragraph, cursor)
            if para_start < 0:
                para_start = cursor
            cursor = para_start + len(paragraph)
            para_tokens = estimate_tokens(paragraph)

            if para_tokens > self.max_tokens:
                if current:
                    emit(current, current_tokens, current_start)
                    current = ""
                    current_tokens = 0

                buffer = ""
                buffer_tokens = 0
                buffer_start = para_start
                for sentence in split_sentences(paragraph):
                    sent_tokens = estimate_tokens(sentence)
                    if buffer and buffer_tokens + sent_tokens > self.max_tokens:
                        emit(buffer, buffer_tokens, buffer_start)
                        overlap = overlap_text(buffer, self.overlap_tokens)
                        buffer_start += max(len(buffer) - len(overlap), 0)
                        buffer = f"{overlap} {sentence}".strip()
                        buffer_tokens = estimate_tokens(buffer)
                    else:
                        buffer = f"{buffer} {sentence}" if buffer else sentence
                        buffer_tokens += sent_tokens

                if buffer.strip():
                    emit(buffer, buffer_tokens, buffer_start)

                current_start = cursor
                continue

            if current and current_tokens + para_tokens > self.max_tokens:
                emit(current, current_tokens, current_start)
                overlap = overlap_text(current, self.overlap_tokens)
                current = f"{overlap}\n\n{paragraph}" if overlap else paragraph
                current_tokens = estimate_tokens(current)
                current_start = max(para_start - len(overlap), 0)
            elif current:
                current = f"{current}\n\n{paragraph}"
                current_tokens += para_tokens
            else:
                current = paragraph
                current_tokens = para_tokens
                current_start = para_start

        if current.strip():
            emit(current, current_tokens, current_start)

        return [p for p in pieces if p.metadata["tokens"] >= self.min_tokens]
