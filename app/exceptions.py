class EmbeddingError(Exception):
    """向量化错误"""


class VectorStoreError(Exception):
    """向量存储错误"""


class LLMError(Exception):
    """LLM 调用错误"""


class LLMNotConfiguredError(LLMError):
    """LLM 提供商未配置 API Key"""


class NotFoundError(Exception):
    """资源不存在"""


class ForbiddenError(Exception):
    """无权访问该资源"""


class ConflictError(Exception):
    """资源冲突（唯一性约束）"""


class InvalidCredentialsError(Exception):
    """凭据无效"""
