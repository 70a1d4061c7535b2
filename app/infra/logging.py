"""
结构化日志配置

- prod/staging 输出 JSON 行，dev/test 输出单行文本
- 每条日志自动带上当前请求 ID 和登录用户 ID（由 RequestContextFilter 注入）
- 第三方库日志统一降到 WARNING

使用示例：
    from app.infra.logging import setup_logging, get_logger

    setup_logging()
    logger = get_logger(__name__)
    logger.info("检索完成", extra={"module_slug": "vyrahook-polisher", "chunks": 3})
"""

import json
import logging
import sys
import time
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any

from app.config import get_settings

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
user_id_var: ContextVar[str | None] = ContextVar("user_id", default=None)

NOISY_LOGGERS = (
    "uvicorn.access",
    "httpx",
    "httpcore",
    "sqlalchemy.engine",
    "qdrant_client",
    "anthropic",
    "openai",
)

TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s - %(message)s"

LEVEL_COLORS = {
    "DEBUG": "\033[36m",
    "INFO": "\033[32m",
    "WARNING": "\033[33m",
    "ERROR": "\033[31m",
    "CRITICAL": "\033[35m",
}
RESET_COLOR = "\033[0m"


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def set_user_id(user_id: str) -> None:
    user_id_var.set(user_id)


class RequestContextFilter(logging.Filter):
    """把上下文中的 request_id / user_id 写到日志记录上，缺失时为 "-" """

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = (request_id_var.get() or "-")[:8]
        record.user_id = user_id_var.get() or "-"
        return True


# LogRecord 自带的属性，JSON 输出时不重复放进 extra
_RESERVED = set(logging.makeLogRecord({}).__dict__) | {"message", "request_id", "user_id", "asctime"}


class JSONFormatter(logging.Formatter):
    """
    JSON 行格式：
    {"timestamp": ..., "level": "INFO", "logger": "app.services.chat",
     "message": "...", "request_id": "...", "user_id": "...", "extra": {...}}
    """

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if request_id_var.get():
            data["request_id"] = request_id_var.get()
        if user_id_var.get():
            data["user_id"] = user_id_var.get()

        extra = {k: v for k, v in record.__dict__.items() if k not in _RESERVED and not k.startswith("_")}
        if extra:
            data["extra"] = extra
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)

        return json.dumps(data, ensure_ascii=False, default=str)


class ConsoleFormatter(logging.Formatter):
    """开发环境的单行文本格式，级别名按颜色区分"""

    def __init__(self):
        super().__init__(TEXT_FORMAT, "%Y-%m-%d %H:%M:%S")

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        color = LEVEL_COLORS.get(record.levelname)
        if not color:
            return line
        return line.replace(record.levelname, f"{color}{record.levelname}{RESET_COLOR}", 1)


def setup_logging(level: str | None = None, json_format: bool | None = None) -> None:
    """
    配置根 logger

    Args:
        level: 日志级别，默认取 settings.log_level
        json_format: 是否输出 JSON，默认 settings.log_json，未配置时 dev/test 之外的环境使用 JSON
    """
    settings = get_settings()
    log_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    if json_format is None:
        json_format = settings.log_json
    if json_format is None:
        json_format = settings.environment not in ("dev", "development", "test")

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(JSONFormatter() if json_format else ConsoleFormatter())

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


class RequestTimer:
    """
    分阶段计时

        timer = RequestTimer()
        ...  # 向量化
        timer.mark("embedding")
        ...  # 写入
        timer.mark("store")
        timer.stages  # {"embedding": 12.3, "store": 4.5}（毫秒）
    """

    def __init__(self):
        self._start = time.perf_counter()
        self._last = self._start
        self.stages: dict[str, float] = {}

    def mark(self, name: str) -> None:
        now = time.perf_counter()
        self.stages[name] = round((now - self._last) * 1000, 2)
        self._last = now

    def elapsed_ms(self) -> float:
        return round((time.perf_counter() - self._start) * 1000, 2)
