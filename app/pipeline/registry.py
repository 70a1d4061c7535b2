"""
算法注册表

提供算法组件的注册和发现机制，类似插件系统。

使用方式：
1. 通过装饰器注册：
   @register_operator("chunker", "paragraph")
   class ParagraphChunker: ...

2. 通过注册表创建实例：
   chunker = operator_registry.create("chunker", "paragraph", max_tokens=400)
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable


class OperatorRegistry:
    """按 kind（类型）和 name（名称）两级索引管理算法组件"""

    def __init__(self) -> None:
        # kind -> name -> operator_class
        self._operators: dict[str, dict[str, Any]] = defaultdict(dict)

    def register(self, kind: str, name: str, op: Any) -> None:
        self._operators[kind][name] = op

    def get(self, kind: str, name: str) -> Any:
        """获取算法组件类，未注册返回 None"""
        return self._operators.get(kind, {}).get(name)

    def create(self, kind: str, name: str, **params: Any) -> Any:
        """按名称实例化算法组件"""
        op = self.get(kind, name)
        if op is None:
            raise KeyError(f"未注册的算法组件: {kind}/{name}")
        return op(**params)

    def list(self, kind: str) -> list[str]:
        """列出某类型下所有已注册的算法名称"""
        return list(self._operators.get(kind, {}).keys())


# 全局单例
operator_registry = OperatorRegistry()


def register_operator(kind: str, name: str) -> Callable[[Any], Any]:
    """算法注册装饰器"""
    def wrapper(cls_or_fn: Any) -> Any:
        operator_registry.register(kind, name, cls_or_fn)
        return cls_or_fn

    return wrapper
