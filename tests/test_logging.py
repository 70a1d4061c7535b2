"""
日志模块测试

- 请求上下文注入
- JSON 格式输出
- 彩色文本格式与分阶段计时
"""

import json
import logging

from app.infra.logging import (
    LEVEL_COLORS,
    RESET_COLOR,
    ConsoleFormatter,
    JSONFormatter,
    RequestContextFilter,
    RequestTimer,
    request_id_var,
    user_id_var,
)


def _record(msg: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord("app.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestRequestContextFilter:
    def test_defaults_to_dash(self):
        record = _record()
        assert RequestContextFilter().filter(record) is True
        assert record.request_id == "-"
        assert record.user_id == "-"

    def test_injects_context(self):
        token_r = request_id_var.set("1234567890abcdef")
        token_u = user_id_var.set("user-1")
        try:
            record = _record()
            RequestContextFilter().filter(record)
        finally:
            request_id_var.reset(token_r)
            user_id_var.reset(token_u)

        assert record.request_id == "12345678"
        assert record.user_id == "user-1"


class TestJSONFormatter:
    def test_basic_fields_and_extra(self):
        token = request_id_var.set("req-1")
        try:
            data = json.loads(JSONFormatter().format(_record("检索完成", chunks=3)))
        finally:
            request_id_var.reset(token)

        assert data["level"] == "INFO"
        assert data["logger"] == "app.test"
        assert data["message"] == "检索完成"
        assert data["request_id"] == "req-1"
        assert data["extra"] == {"chunks": 3}
        assert "user_id" not in data


class TestConsoleFormatter:
    def test_colors_level_and_includes_request_id(self):
        token = request_id_var.set("abcdef0123456789")
        try:
            record = _record("上传完成")
            RequestContextFilter().filter(record)
            line = ConsoleFormatter().format(record)
        finally:
            request_id_var.reset(token)

        assert f"{LEVEL_COLORS['INFO']}INFO{RESET_COLOR}" in line
        assert "[abcdef01]" in line
        assert "app.test - 上传完成" in line

    def test_unknown_level_left_plain(self):
        record = logging.LogRecord("app.test", 5, __file__, 1, "trace", None, None)
        RequestContextFilter().filter(record)
        line = ConsoleFormatter().format(record)

        assert "\033[" not in line


class TestRequestTimer:
    def test_mark_records_stages_in_order(self):
        timer = RequestTimer()
        timer.mark("embedding")
        timer.mark("store")

        assert list(timer.stages) == ["embedding", "store"]
        assert all(value >= 0 for value in timer.stages.values())

    def test_elapsed_covers_stages(self):
        timer = RequestTimer()
        timer.mark("chunk")

        assert timer.elapsed_ms() >= timer.stages["chunk"]
