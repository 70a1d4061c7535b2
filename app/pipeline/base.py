"""
Pipeline 基础类型定义

定义算法组件的抽象接口，切分器需实现对应的 Protocol。

设计理念：
- 使用 Protocol 而非抽象基类，提供结构化类型检查
- 统一的 name/kind 属性，便于注册和发现
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Protocol


def estimate_tokens(text: str) -> int:
    """粗略估算 token 数（约 4 字符 / token）"""
    return math.ceil(len(text) / 4)


@dataclass
class ChunkPiece:
    """
    文本片段数据结构

    切分器的输出单元，包含文本内容和元数据。
    """
    text: str       # 片段文本
    metadata: dict  # 元数据（tokens、起止偏移等）

    @property
    def tokens(self) -> int:
        return self.metadata.get("tokens", estimate_tokens(self.text))


class BaseOperator(Protocol):
    """算法组件基础协议"""
    name: str  # 算法名称，如 "paragraph"
    kind: str  # 算法类型，如 "chunker"


class BaseChunkerOperator(BaseOperator, Protocol):
    """
    切分器协议

    所有文本切分算法需实现此接口。
    """
    kind: str = "chunker"

    def chunk(self, text: str, metadata: dict | None = None) -> list[ChunkPiece]:
        """
        将文本切分为多个片段

        Args:
            text: 原始文本
            metadata: 附加元数据（会传递到每个片段）

        Returns:
            list[ChunkPiece]: 切分后的片段列表
        """
        ...
