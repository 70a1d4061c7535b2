"""
Content Engine Service - 应用主包

模块化 AI 助手后端，包含以下子模块：
- api/        : API 路由和依赖注入
- auth/       : 认证（JWT、bcrypt 密码哈希）与限流
- db/         : 数据库连接和会话管理
- models/     : SQLAlchemy ORM 数据模型
- schemas/    : Pydantic 请求/响应模式（camelCase 线上格式）
- services/   : 业务逻辑服务层（聊天、知识库、检索、工作流等）
- pipeline/   : 文本切分算法
- infra/      : 基础设施（向量库、Embedding、LLM、Redis、日志）
- middleware/ : 请求追踪

项目架构遵循分层设计：
    API层 → 服务层 → 数据访问层 → 基础设施层
"""
