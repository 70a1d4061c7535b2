"""
Pipeline 可插拔算法模块

- chunkers/   : 文本切分器（段落切分）
- registry.py : 算法注册表，支持按名称动态获取算法实例

使用示例：
    from app.pipeline import operator_registry

    chunker = operator_registry.create("chunker", "paragraph", max_tokens=400)
    pieces = chunker.chunk("长文本...")
"""

from app.pipeline import chunkers  # noqa: F401
from app.pipeline.registry import operator_registry

__all__ = ["operator_registry"]
