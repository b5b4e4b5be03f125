"""
@file __init__.py
@brief bertembed 命令行前端包入口，仅负责聚合 CLI 子命令。
       Entry for the bertembed CLI frontend package, aggregating CLI subcommands only.
"""

from __future__ import annotations

from .main import main

__all__ = [
    "main",
]
