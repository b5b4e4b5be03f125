"""
@file __init__.py
@brief bertembed.data 子系统公共接口：标注数据结构、元数据标记与 JSONL 读写。
       Public interface for the bertembed.data subsystem: annotation records,
       metadata tagging and JSONL I/O.
"""

from __future__ import annotations

from .annotations import (
    AnnotatorType,
    Annotation,
    Sentence,
    Token,
    SentenceTokens,
    unpack_sentences,
    unpack_tokens,
    pack_word_embeddings,
)
from .metadata import EmbeddingsMetadataTagger
from .io import (
    AnnotationDocument,
    iter_annotation_documents,
    read_annotation_documents,
    write_annotation_documents,
)

__all__ = [
    "AnnotatorType",
    "Annotation",
    "Sentence",
    "Token",
    "SentenceTokens",
    "unpack_sentences",
    "unpack_tokens",
    "pack_word_embeddings",
    "EmbeddingsMetadataTagger",
    "AnnotationDocument",
    "iter_annotation_documents",
    "read_annotation_documents",
    "write_annotation_documents",
]
