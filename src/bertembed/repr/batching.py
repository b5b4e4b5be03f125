"""
@file batching.py
@brief 批处理模块：将子词句子分组为批次，截断 / 插入 [CLS][SEP] / 按批内最长补齐，
       生成推理引擎所需的 input_ids、token_type_ids 与 attention_mask 张量。
       Batching module: group wordpiece sentences into batches, truncate, insert
       [CLS]/[SEP], pad to the longest row of each batch, and produce the
       input_ids / token_type_ids / attention_mask tensors the engine consumes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

import torch
from torch import Tensor

from bertembed.errors import ConfigurationError
from bertembed.repr.tokenizer import TokenizedSentence
from bertembed.utils.logging import get_logger

logger = get_logger(__name__)

#: 补齐使用的 token ID。Token id used for padding.
PAD_ID = 0


# ============================================================
# 批次结构 Batch container
# ============================================================


@dataclass
class WordpieceBatch:
    """
    @brief 一个推理批次。One inference batch.
    @param input_ids 子词 ID，形状 (B, L)。Wordpiece ids of shape (B, L).
    @param token_type_ids 段 ID，单句场景全 0，形状 (B, L)。Segment ids, all zeros, (B, L).
    @param attention_mask 1 表示真实位置，0 表示 padding，形状 (B, L)。
           1 for real positions, 0 for padding, (B, L).
    @param sentences 本批次的句子（输入顺序）。Sentences of this batch, in input order.
    @param piece_counts 每行保留的子词数（不含 [CLS]/[SEP]）。
           Kept pieces per row, excluding [CLS]/[SEP].
    @param offset 本批次首句在整次输入中的下标。Index of the first sentence in the whole input.
    """

    input_ids: Tensor
    token_type_ids: Tensor
    attention_mask: Tensor
    sentences: List[TokenizedSentence]
    piece_counts: List[int]
    offset: int = 0

    def __len__(self) -> int:
        return len(self.sentences)

    @property
    def seq_len(self) -> int:
        return int(self.input_ids.shape[1])


# ============================================================
# BatchBuilder 主类
# ============================================================


class BatchBuilder:
    """
    @brief 将子词句子编码为定长批次张量。Encode wordpiece sentences into batched tensors.
    @param cls_id 句首特殊符号 ID。Sentence start token id.
    @param sep_id 句尾特殊符号 ID。Sentence end token id.
    @param pad_id 补齐 ID（默认 0）。Padding id (0 by default).
    """

    def __init__(self, cls_id: int, sep_id: int, pad_id: int = PAD_ID) -> None:
        self.cls_id = cls_id
        self.sep_id = sep_id
        self.pad_id = pad_id

    def encode_row(self, sentence: TokenizedSentence, max_length: int) -> List[int]:
        """
        @brief [CLS] + 截断后的子词 + [SEP]，总长不超过 max_length。
               [CLS] + truncated pieces + [SEP], never longer than max_length.
        """
        keep = max_length - 2
        ids = sentence.piece_ids
        if len(ids) > keep:
            logger.warning(
                "Sentence %d has %d wordpieces; truncating to %d (max_length=%d).",
                sentence.sentence_index,
                len(ids),
                keep,
                max_length,
            )
            ids = ids[:keep]
        return [self.cls_id] + ids + [self.sep_id]

    def _collate(
        self, sentences: Sequence[TokenizedSentence], max_length: int, offset: int
    ) -> WordpieceBatch:
        rows = [self.encode_row(s, max_length) for s in sentences]
        seq_len = max(len(r) for r in rows)
        batch_size = len(rows)

        input_ids = torch.full((batch_size, seq_len), self.pad_id, dtype=torch.long)
        attention_mask = torch.zeros((batch_size, seq_len), dtype=torch.long)
        token_type_ids = torch.zeros((batch_size, seq_len), dtype=torch.long)

        for b_idx, row in enumerate(rows):
            input_ids[b_idx, : len(row)] = torch.tensor(row, dtype=torch.long)
            attention_mask[b_idx, : len(row)] = 1

        return WordpieceBatch(
            input_ids=input_ids,
            token_type_ids=token_type_ids,
            attention_mask=attention_mask,
            sentences=list(sentences),
            piece_counts=[len(r) - 2 for r in rows],
            offset=offset,
        )

    def build(
        self,
        tokenized: Sequence[TokenizedSentence],
        batch_size: int,
        max_length: int,
    ) -> List[WordpieceBatch]:
        """
        @brief 按输入顺序每 batch_size 句切一批，并编码为张量。
               Slice consecutive groups of batch_size sentences, in input order,
               and encode each as tensors.
        @param tokenized 子词句子序列。Wordpiece sentences.
        @param batch_size 每批最多句子数。Max sentences per batch.
        @param max_length 含特殊符号的最大长度。Max length including special tokens.
        @return 批次列表；空输入返回空列表。Batches; empty input yields [].
        @throws ConfigurationError batch_size < 1 或 max_length < 2。
                batch_size < 1 or max_length < 2.
        """
        if batch_size < 1:
            raise ConfigurationError(f"batch_size must be >= 1, got {batch_size}")
        if max_length < 2:
            raise ConfigurationError(
                f"max_length must leave room for [CLS] and [SEP], got {max_length}"
            )

        batches: List[WordpieceBatch] = []
        for start in range(0, len(tokenized), batch_size):
            group = tokenized[start : start + batch_size]
            batches.append(self._collate(group, max_length, offset=start))
        return batches

    def __call__(
        self,
        tokenized: Sequence[TokenizedSentence],
        batch_size: int,
        max_length: int,
    ) -> List[WordpieceBatch]:
        return self.build(tokenized, batch_size, max_length)


def build_batches(
    tokenized: Sequence[TokenizedSentence],
    batch_size: int,
    max_length: int,
    cls_id: int,
    sep_id: int,
    pad_id: int = PAD_ID,
) -> List[WordpieceBatch]:
    """@brief BatchBuilder 的函数式入口。Functional entry point for BatchBuilder."""
    return BatchBuilder(cls_id, sep_id, pad_id).build(tokenized, batch_size, max_length)
