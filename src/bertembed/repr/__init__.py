"""
@file __init__.py
@brief bertembed.repr 子系统公共接口：词表、子词切分与批处理。
       Public interface for the bertembed.repr subsystem: vocabulary, wordpiece
       tokenization and batching.
"""

from __future__ import annotations

# ============================================================
# 词表模块 Vocabulary
# ============================================================

from .vocab import (
    VocabConfig,
    WordpieceVocab,
    load_vocab,
)

# ============================================================
# 子词切分 Wordpiece tokenization
# ============================================================

from .tokenizer import (
    WordpiecePart,
    TokenizedSentence,
    BasicTokenizer,
    WordpieceEncoder,
    WordpieceTokenizer,
)

# ============================================================
# 批处理 Batching
# ============================================================

from .batching import (
    PAD_ID,
    WordpieceBatch,
    BatchBuilder,
    build_batches,
)

__all__ = [
    # --- Vocab ---
    "VocabConfig",
    "WordpieceVocab",
    "load_vocab",
    # --- Tokenizer ---
    "WordpiecePart",
    "TokenizedSentence",
    "BasicTokenizer",
    "WordpieceEncoder",
    "WordpieceTokenizer",
    # --- Batching ---
    "PAD_ID",
    "WordpieceBatch",
    "BatchBuilder",
    "build_batches",
]
