"""
@file logging.py
@brief 项目统一日志工具，提供微秒精度时间戳和 stdout/stderr 分流。
       Unified logging utilities with microsecond timestamps and stdout/stderr routing.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from typing import Optional

#: 控制日志等级的环境变量。Environment variable controlling the log level.
LOG_LEVEL_ENV = "BERTEMBED_LOG_LEVEL"


def _ensure_utf8_stream(stream):
    """
    @brief 确保给定文本流以 UTF-8 编码输出，避免 wordpiece 中的非 ASCII 字符导致 UnicodeEncodeError。
           Ensure the given text stream writes UTF-8, so non-ASCII wordpieces never
           raise UnicodeEncodeError on legacy consoles.
    @param stream 原始输出流（sys.stdout / sys.stderr）。Original output stream.
    @return 重新配置后的流；如无法修改则返回原始流。
            The reconfigured stream, or the original one if it cannot be changed.
    """
    reconfig = getattr(stream, "reconfigure", None)
    if callable(reconfig):
        try:
            reconfig(encoding="utf-8", errors="backslashreplace")
        except (ValueError, OSError):
            # 流已关闭或被替换（例如 pytest capture），保持原样。
            return stream
    return stream


class _ExactLevelFilter(logging.Filter):
    """
    @brief 只允许指定等级的日志记录通过。Filter that only passes records of an exact level.
    @param level 需要通过的日志等级。Level to pass.
    """

    def __init__(self, level: int) -> None:
        self.level = level
        super().__init__()

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno == self.level


class _MicrosecondFormatter(logging.Formatter):
    """时间戳格式 / timestamp format: YYYY-MM-DD-HH:MM:SS.microseconds"""

    def formatTime(self, record, datefmt=None):
        dt = datetime.fromtimestamp(record.created)
        return dt.strftime("%Y-%m-%d-%H:%M:%S.") + f"{dt.microsecond:06d}"


def _resolve_level() -> int:
    """
    @brief 从环境变量解析日志等级，非法值回退到 INFO。
           Resolve the log level from the environment, falling back to INFO.
    """
    raw = os.environ.get(LOG_LEVEL_ENV, "INFO").strip().upper()
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    @brief 获取带标准配置的 logger：INFO 打到 stdout，WARNING/ERROR 打到 stderr。
           Get a logger with the standard setup: INFO to stdout, WARNING/ERROR to stderr.
    @param name 日志名称（通常为 __name__）。Logger name (usually __name__).
    @return 已配置好的 logger。A configured logger.
    @note 幂等：多次调用不会重复添加 handler。
          Idempotent; repeated calls never add duplicate handlers.
    """
    logger = logging.getLogger(name if name is not None else "bertembed")

    if getattr(logger, "_bertembed_configured", False):
        return logger

    stdout = _ensure_utf8_stream(sys.stdout)
    stderr = _ensure_utf8_stream(sys.stderr)

    logger.setLevel(_resolve_level())
    logger.propagate = False

    formatter = _MicrosecondFormatter(
        "[%(asctime)s] %(levelname)s @{%(name)s}: %(message)s"
    )

    # --- INFO -> stdout ---
    info_handler = logging.StreamHandler(stream=stdout)
    info_handler.setLevel(logging.INFO)
    info_handler.addFilter(_ExactLevelFilter(logging.INFO))
    info_handler.setFormatter(formatter)

    # --- WARNING/ERROR -> stderr ---
    err_handler = logging.StreamHandler(stream=stderr)
    err_handler.setLevel(logging.WARNING)
    err_handler.setFormatter(formatter)

    logger.addHandler(info_handler)
    logger.addHandler(err_handler)

    setattr(logger, "_bertembed_configured", True)
    return logger
