"""
@file reducer.py
@brief 嵌入归约：按 pooling 层选取隐藏层，并把子词向量按原始 token 取平均。
       Embedding reduction: select the pooling layer and average wordpiece vectors
       back to the original token granularity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

import torch
from torch import Tensor

from bertembed.data.annotations import Token
from bertembed.errors import ConfigurationError
from bertembed.repr.batching import WordpieceBatch
from bertembed.utils.configs import VALID_POOLING_LAYERS
from bertembed.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TokenEmbedding:
    """
    @brief 单个原始 token 的最终向量。Final vector of one original token.
    @param token 原始 token。Original token.
    @param sentence_index 所属句子序号。Owning sentence index.
    @param token_index token 在句中的位置。Position of the token in its sentence.
    @param vector 长度为 dimension 的向量。Vector of length dimension.
    @param truncated True 表示子词全部被截断，向量为零向量。
           True when every piece was truncated away and the vector is all zeros.
    """

    token: Token
    sentence_index: int
    token_index: int
    vector: Tuple[float, ...]
    truncated: bool = False


def select_pooling_layer(hidden_states: Tensor, pooling_layer: int) -> Tensor:
    """
    @brief 从 (层数+1, B, L, H) 中取出一层。Pick one layer out of (num_layers + 1, B, L, H).
    @param hidden_states 逐层激活，第 0 层为嵌入层。Layered activations; layer 0 = embeddings.
    @param pooling_layer 0 → 嵌入层，-1 → 最后一层，-2 → 倒数第二层。
           0 → embeddings, -1 → last layer, -2 → second-to-last layer.
    @return (B, L, H) 张量。Tensor of shape (B, L, H).
    """
    if pooling_layer not in VALID_POOLING_LAYERS:
        raise ConfigurationError(
            f"poolingLayer must be either 0, -1, or -2; got {pooling_layer!r}"
        )
    if hidden_states.dim() != 4:
        raise ValueError(
            "hidden_states must be 4D (layers, batch, seq_len, hidden), "
            f"got shape {tuple(hidden_states.shape)}"
        )
    num_layers = hidden_states.shape[0]
    if num_layers < -pooling_layer:
        raise ValueError(
            f"poolingLayer {pooling_layer} needs at least {-pooling_layer} layers, "
            f"engine returned {num_layers}"
        )
    return hidden_states[pooling_layer]


class EmbeddingReducer:
    """
    @brief 将引擎输出还原为每个原始 token 一个向量。
           Turn engine output back into one vector per original token.

    @note
        - 跳过 [CLS]、[SEP] 与 attention_mask 为 0 的位置；
          [CLS], [SEP] and positions with attention_mask 0 are skipped.
        - 同一 token 的子词向量取逐元素算术平均，再截取前 dimension 维；
          Pieces of the same token are averaged element-wise, then cut to dimension.
        - 子词被完全截断的 token 得到零向量并标记 truncated，数量与顺序始终保持。
          Tokens whose pieces were all truncated get a zero vector flagged as
          truncated; token count and order are always preserved.
    """

    def __init__(self, pooling_layer: int, dimension: int) -> None:
        if pooling_layer not in VALID_POOLING_LAYERS:
            raise ConfigurationError(
                f"poolingLayer must be either 0, -1, or -2; got {pooling_layer!r}"
            )
        self.pooling_layer = pooling_layer
        self.dimension = dimension

    def reduce(self, hidden_states: Tensor, batch: WordpieceBatch) -> List[List[TokenEmbedding]]:
        """
        @brief 对一个批次做归约。Reduce one batch.
        @param hidden_states 引擎输出 (层数+1, B, L, H)。Engine output.
        @param batch 对应的 WordpieceBatch。The matching batch.
        @return 外层按批内句子顺序，内层按 token 顺序。
                Outer in batch sentence order, inner in token order.
        """
        layer = select_pooling_layer(hidden_states, self.pooling_layer)
        batch_rows, seq_len, hidden = layer.shape
        if batch_rows != len(batch) or seq_len != batch.seq_len:
            raise ValueError(
                f"engine output shape (B={batch_rows}, L={seq_len}) does not match "
                f"batch (B={len(batch)}, L={batch.seq_len})"
            )
        if hidden < self.dimension:
            raise ValueError(
                f"engine hidden size {hidden} is smaller than dimension {self.dimension}"
            )

        mask = batch.attention_mask
        results: List[List[TokenEmbedding]] = []
        for row, sentence in enumerate(batch.sentences):
            kept = batch.piece_counts[row]
            groups: Dict[int, List[int]] = {}
            # 位置 0 为 [CLS]，1..kept 为保留的子词，kept+1 为 [SEP]。
            for k, part in enumerate(sentence.parts[:kept]):
                pos = k + 1
                if int(mask[row, pos]) == 0:
                    continue
                groups.setdefault(part.token_index, []).append(pos)

            embeddings: List[TokenEmbedding] = []
            missing = 0
            for token_index, token in enumerate(sentence.tokens):
                positions = groups.get(token_index)
                if positions:
                    vec = layer[row, positions, : self.dimension].mean(dim=0)
                    truncated = False
                else:
                    vec = torch.zeros(self.dimension, dtype=layer.dtype)
                    truncated = True
                    missing += 1
                embeddings.append(
                    TokenEmbedding(
                        token=token,
                        sentence_index=sentence.sentence_index,
                        token_index=token_index,
                        vector=tuple(float(x) for x in vec.tolist()),
                        truncated=truncated,
                    )
                )

            if missing:
                logger.warning(
                    "Sentence %d: %d of %d tokens lost all wordpieces to truncation; "
                    "emitting zero vectors.",
                    sentence.sentence_index,
                    missing,
                    len(sentence.tokens),
                )
            results.append(embeddings)
        return results
