"""
@file __init__.py
@brief bertembed.utils 子系统公共接口：配置加载与日志工具。
       Public interface for the bertembed.utils subsystem: configuration loading
       and logging utilities.
"""

from __future__ import annotations

# ============================================================
# 日志工具 Logging utilities
# ============================================================

from .logging import get_logger

# ============================================================
# 配置 Configuration
# ============================================================

from .configs import (
    MAX_SUPPORTED_LENGTH,
    VALID_POOLING_LAYERS,
    EmbeddingsConfig,
    EmbeddingsConfigBuilder,
    config_from_dict,
    load_config,
)

__all__ = [
    "get_logger",
    "MAX_SUPPORTED_LENGTH",
    "VALID_POOLING_LAYERS",
    "EmbeddingsConfig",
    "EmbeddingsConfigBuilder",
    "config_from_dict",
    "load_config",
]
