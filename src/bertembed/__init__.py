"""
@file __init__.py
@brief bertembed 顶层公共接口：预训练 BERT 词向量标注器及其词表、分词、批处理、归约与配置组件。
       Top-level public API of bertembed: the pretrained BERT word-embeddings
       annotator and its vocabulary, tokenization, batching, reduction and
       configuration components.
"""

from __future__ import annotations

__version__ = "0.1.0"

# ============================================================
# 子系统汇总 Re-export Subsystems
# ============================================================

from .errors import (  # type: ignore[F401]
    BertEmbeddingsError,
    ConfigurationError,
    ResourceNotFoundError,
    EngineFailure,
)

from .utils import (  # type: ignore[F401]
    get_logger,
    EmbeddingsConfig,
    EmbeddingsConfigBuilder,
    config_from_dict,
    load_config,
)

from .data import (  # type: ignore[F401]
    AnnotatorType,
    Annotation,
    Sentence,
    Token,
    SentenceTokens,
    EmbeddingsMetadataTagger,
    AnnotationDocument,
    read_annotation_documents,
    write_annotation_documents,
)

from .repr import (  # type: ignore[F401]
    WordpieceVocab,
    load_vocab,
    WordpiecePart,
    TokenizedSentence,
    WordpieceTokenizer,
    WordpieceBatch,
    BatchBuilder,
    build_batches,
)

from .models import (  # type: ignore[F401]
    InferenceEngine,
    BertInferenceEngine,
    TokenEmbedding,
    EmbeddingReducer,
    select_pooling_layer,
    BertEmbeddings,
)

__all__ = [
    # --- 异常 --- #
    "BertEmbeddingsError",
    "ConfigurationError",
    "ResourceNotFoundError",
    "EngineFailure",
    # --- 工具 --- #
    "get_logger",
    "EmbeddingsConfig",
    "EmbeddingsConfigBuilder",
    "config_from_dict",
    "load_config",
    # --- 数据 --- #
    "AnnotatorType",
    "Annotation",
    "Sentence",
    "Token",
    "SentenceTokens",
    "EmbeddingsMetadataTagger",
    "AnnotationDocument",
    "read_annotation_documents",
    "write_annotation_documents",
    # --- 表示层 repr --- #
    "WordpieceVocab",
    "load_vocab",
    "WordpiecePart",
    "TokenizedSentence",
    "WordpieceTokenizer",
    "WordpieceBatch",
    "BatchBuilder",
    "build_batches",
    # --- 模型 --- #
    "InferenceEngine",
    "BertInferenceEngine",
    "TokenEmbedding",
    "EmbeddingReducer",
    "select_pooling_layer",
    "BertEmbeddings",
]
