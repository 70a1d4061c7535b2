"""
文本切分器模块

- ParagraphChunker : 按段落/标题/编号列表切分，超长段落按句子切分，片段间保留词级重叠
"""

from app.pipeline.chunkers.paragraph import ParagraphChunker  # noqa: F401

__all__ = ["ParagraphChunker"]
