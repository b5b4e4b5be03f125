"""
@file __init__.py
@brief bertembed.models 子系统公共接口：推理引擎、嵌入归约与标注器编排。
       Public interface for the bertembed.models subsystem: inference engine,
       embedding reduction and the annotator orchestrator.
"""

from __future__ import annotations

from .engine import (
    InferenceEngine,
    BertInferenceEngine,
    parse_engine_config,
)
from .reducer import (
    TokenEmbedding,
    EmbeddingReducer,
    select_pooling_layer,
)
from .bert_embeddings import BertEmbeddings

__all__ = [
    "InferenceEngine",
    "BertInferenceEngine",
    "parse_engine_config",
    "TokenEmbedding",
    "EmbeddingReducer",
    "select_pooling_layer",
    "BertEmbeddings",
]
