"""androidresolver 日志配置

提供统一的日志配置，支持普通文本和结构化 JSON 两种输出格式，
以及用于单次解析周期的告警追踪 Handler。
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

# 包级 logger 名称，解析周期内的告警追踪挂在这里
PACKAGE_LOGGER = "androidresolver"


class JSONFormatter(logging.Formatter):
    """结构化 JSON 日志格式器，便于 CI 流水线消费

    输出格式:
        {
            "timestamp": "2024-01-01T12:00:00+00:00",
            "level": "WARNING",
            "logger": "androidresolver.core.conflicts",
            "message": "log message",
            "module": "conflicts",
            "function": "resolve",
            "line": 42,
            "exception": "traceback..." (仅在有异常时)
        }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_entry, ensure_ascii=False)


class WarningTracker(logging.Handler):
    """记录一个解析周期内是否输出过 WARNING/ERROR

    挂载到包级 logger 上，周期结束时由调用方 detach()。
    """

    def __init__(self) -> None:
        super().__init__(level=logging.WARNING)
        self.triggered = False

    def emit(self, record: logging.LogRecord) -> None:
        self.triggered = True

    def attach(self) -> WarningTracker:
        logging.getLogger(PACKAGE_LOGGER).addHandler(self)
        return self

    def detach(self) -> None:
        logging.getLogger(PACKAGE_LOGGER).removeHandler(self)


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """配置根日志器

    参数:
        level: 日志级别字符串（DEBUG, INFO, WARNING, ERROR, CRITICAL）
        json_output: 为 True 时使用 JSON 格式（适用于 CI），否则使用人类可读格式

    说明:
        - 输出到 stderr
        - 自动清理已有 handlers，避免重复输出
    """
    root = logging.getLogger()

    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()

    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)

    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        fmt = "%(asctime)s [%(levelname)-7s] %(name)s: %(message)s"
        handler.setFormatter(logging.Formatter(fmt))

    root.addHandler(handler)


def reset_logging() -> None:
    """重置根日志器配置，常用于测试环境"""
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
