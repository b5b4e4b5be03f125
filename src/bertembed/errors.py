"""
@file errors.py
@brief 项目统一异常层级：配置错误、资源缺失、推理引擎失败。
       Unified exception hierarchy: configuration errors, missing resources and
       inference engine failures.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union


class BertEmbeddingsError(Exception):
    """@brief 所有 bertembed 异常的基类。Base class of all bertembed errors."""


class ConfigurationError(BertEmbeddingsError, ValueError):
    """
    @brief 配置非法（poolingLayer、maxSentenceLength 等），在任何推理之前同步抛出。
           Invalid configuration (poolingLayer, maxSentenceLength, ...), raised
           synchronously before any inference runs. Values are never clamped.
    """


class ResourceNotFoundError(BertEmbeddingsError, FileNotFoundError):
    """
    @brief 词表 / 模型目录 / 配置文件缺失或格式错误。
           Vocabulary, model folder or config file is missing or malformed.
    @param path 出错的路径。Offending path.
    @param reason 可读的失败原因。Human readable reason.
    """

    def __init__(self, path: Union[str, Path], reason: str = "resource not found") -> None:
        self.path = str(path)
        self.reason = reason
        super().__init__(f"{reason}: {self.path}")

    def __str__(self) -> str:
        return f"{self.reason}: {self.path}"


class EngineFailure(BertEmbeddingsError, RuntimeError):
    """
    @brief 推理引擎调用失败（例如显存耗尽），不重试，整次调用中止。
           The inference engine failed (e.g. out of memory). Never retried; the
           whole invocation is aborted.
    @param message 错误信息。Error message.
    @param batch_index 失败批次在本次调用中的序号。Index of the failing batch.
    """

    def __init__(self, message: str, batch_index: Optional[int] = None) -> None:
        self.batch_index = batch_index
        super().__init__(message)


__all__ = [
    "BertEmbeddingsError",
    "ConfigurationError",
    "ResourceNotFoundError",
    "EngineFailure",
]
