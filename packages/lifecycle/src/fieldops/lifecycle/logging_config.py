"""CLI 运行日志配置

sweep / notify-delayed 通常由 cron 触发：日志写到 stderr，stdout 只留给命令摘要。
每次运行生成 run_id，与 command / today 一起绑定到 structlog contextvars，
本次运行产生的全部事件都带上这些字段。

环境变量:
    FIELDOPS_LOG_FORMAT: "dev"（默认，可读输出）或 "json"（交给日志采集）
    FIELDOPS_LOG_LEVEL: DEBUG / INFO / WARNING / ERROR，非法值按 INFO
"""

import logging
import os
import sys
from typing import Any

import structlog
from ulid import ULID

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _log_level() -> int:
    name = os.environ.get("FIELDOPS_LOG_LEVEL", "INFO").upper()
    return getattr(logging, name if name in _LEVELS else "INFO")


def _renderer() -> structlog.types.Processor:
    if os.environ.get("FIELDOPS_LOG_FORMAT", "dev") == "json":
        return structlog.processors.JSONRenderer(ensure_ascii=False)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def setup_logging(**run_context: Any) -> str:
    """初始化日志并绑定本次运行的上下文

    Args:
        run_context: 绑定到每个事件的字段（如 command、today），值为 None 的字段忽略

    Returns:
        本次运行的 run_id
    """
    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *pre_chain,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(processor=_renderer(), foreign_pre_chain=pre_chain)
    )
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(_log_level())

    run_id = str(ULID())
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        run_id=run_id,
        **{key: value for key, value in run_context.items() if value is not None},
    )
    return run_id
