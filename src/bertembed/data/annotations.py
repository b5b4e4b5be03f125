"""
@file annotations.py
@brief 流水线标注数据结构：Annotation、Sentence、Token，以及上游解包 / 下游打包工具。
       Pipeline annotation records (Annotation, Sentence, Token) plus unpack helpers
       for upstream input and pack helpers for downstream output.

@note 所有偏移量均为左闭右开区间（与 Python 切片一致）。
      All offsets are begin-inclusive, end-exclusive (Python slice semantics).
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from bertembed.utils.logging import get_logger

logger = get_logger(__name__)


class AnnotatorType:
    """@brief 标注类型常量。Annotator type constants."""

    DOCUMENT = "document"
    TOKEN = "token"
    WORD_EMBEDDINGS = "word_embeddings"


# ============================================================
# 基础记录 Basic records
# ============================================================


@dataclass(frozen=True)
class Annotation:
    """
    @brief 流水线中传递的单条标注。A single annotation flowing through the pipeline.
    @param annotator_type 标注类型（document / token / word_embeddings）。Annotator type.
    @param begin 起始字符偏移（含）。Begin offset (inclusive).
    @param end 结束字符偏移（不含）。End offset (exclusive).
    @param result 标注文本。Annotated text.
    @param metadata 字符串键值元数据。String metadata.
    @param embeddings 可选向量。Optional vector.
    """

    annotator_type: str
    begin: int
    end: int
    result: str
    metadata: Dict[str, str] = field(default_factory=dict)
    embeddings: Tuple[float, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """@brief 导出为可 JSON 序列化的字典。Export to a JSON-serializable dict."""
        return {
            "annotatorType": self.annotator_type,
            "begin": self.begin,
            "end": self.end,
            "result": self.result,
            "metadata": dict(self.metadata),
            "embeddings": list(self.embeddings),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Annotation":
        """
        @brief 从字典重建 Annotation，接受 annotatorType / annotator_type 两种键名。
               Rebuild an Annotation; accepts both annotatorType and annotator_type.
        """
        annotator_type = data.get("annotatorType", data.get("annotator_type"))
        if annotator_type is None:
            raise ValueError(f"annotation is missing 'annotatorType': {dict(data)!r}")
        return cls(
            annotator_type=str(annotator_type),
            begin=int(data["begin"]),
            end=int(data["end"]),
            result=str(data.get("result", "")),
            metadata={str(k): str(v) for k, v in (data.get("metadata") or {}).items()},
            embeddings=tuple(float(x) for x in (data.get("embeddings") or ())),
        )


@dataclass(frozen=True)
class Sentence:
    """
    @brief 上游分句结果。A sentence produced upstream.
    @param content 句子文本。Sentence text.
    @param begin 起始偏移。Begin offset.
    @param end 结束偏移（不含）。End offset (exclusive).
    @param index 句子序号。Sentence index.
    """

    content: str
    begin: int
    end: int
    index: int


@dataclass(frozen=True)
class Token:
    """
    @brief 上游切分好的 token；核心模块只在其内部做子词切分，从不改变边界。
           A token segmented upstream. The core only sub-splits inside it and never
           moves its boundaries.
    """

    text: str
    begin: int
    end: int
    sentence_index: int = 0


@dataclass(frozen=True)
class SentenceTokens:
    """
    @brief 一个句子及其有序 token，tokenizer 的输入单元。
           One sentence with its ordered tokens; the tokenizer's input unit.
    """

    index: int
    tokens: Tuple[Token, ...]
    sentence: Optional[Sentence] = None


# ============================================================
# 解包 Unpack (upstream → core)
# ============================================================


def _sentence_index(annotation: Annotation, default: int) -> int:
    raw = annotation.metadata.get("sentence")
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(
            f"metadata 'sentence' must be an integer, got {raw!r} at "
            f"[{annotation.begin}, {annotation.end})"
        ) from exc


def unpack_sentences(annotations: Sequence[Annotation]) -> List[Sentence]:
    """
    @brief 从 document 类型标注中取出句子。Extract sentences from document annotations.
    @param annotations 一行上的全部标注。All annotations of one row.
    @return 按出现顺序排列的句子。Sentences in order of appearance.
    """
    docs = [a for a in annotations if a.annotator_type == AnnotatorType.DOCUMENT]
    return [
        Sentence(content=a.result, begin=a.begin, end=a.end, index=_sentence_index(a, i))
        for i, a in enumerate(docs)
    ]


def unpack_tokens(annotations: Sequence[Annotation]) -> List[SentenceTokens]:
    """
    @brief 将 token 标注按句子分组，并与对应句子关联、校验偏移一致性。
           Group token annotations by sentence, attach the owning sentence and
           check offset consistency.
    @param annotations 一行上的全部标注。All annotations of one row.
    @return 按句子序号排序的 SentenceTokens，只包含至少有一个 token 的句子。
            SentenceTokens ordered by sentence index; only sentences with tokens.
    @note 句内 token 保持上游顺序，偏移逆序时只告警。
          Tokens keep their upstream order within a sentence; out-of-order
          offsets only log a warning.
    @throws ValueError token 偏移越出所属句子。A token lies outside its sentence.
    """
    sentences = {s.index: s for s in unpack_sentences(annotations)}

    grouped: "OrderedDict[int, List[Token]]" = OrderedDict()
    for a in annotations:
        if a.annotator_type != AnnotatorType.TOKEN:
            continue
        idx = _sentence_index(a, 0)
        grouped.setdefault(idx, []).append(
            Token(text=a.result, begin=a.begin, end=a.end, sentence_index=idx)
        )

    result: List[SentenceTokens] = []
    for idx in sorted(grouped):
        tokens = grouped[idx]
        for prev, cur in zip(tokens, tokens[1:]):
            if cur.begin < prev.begin:
                logger.warning(
                    "Sentence %d: token %r at %d precedes %r at %d; keeping upstream order.",
                    idx,
                    cur.text,
                    cur.begin,
                    prev.text,
                    prev.begin,
                )
                break
        sentence = sentences.get(idx)
        if sentence is not None:
            for t in tokens:
                if t.begin < sentence.begin or t.end > sentence.end:
                    raise ValueError(
                        f"token {t.text!r} [{t.begin}, {t.end}) lies outside sentence "
                        f"{idx} [{sentence.begin}, {sentence.end})"
                    )
        result.append(SentenceTokens(index=idx, tokens=tuple(tokens), sentence=sentence))
    return result


# ============================================================
# 打包 Pack (core → downstream)
# ============================================================


def pack_word_embeddings(embedded: Sequence[Sequence[Any]]) -> List[Annotation]:
    """
    @brief 将 TokenEmbedding 嵌套序列打包为 word_embeddings 标注（句序、token 序）。
           Pack nested TokenEmbedding sequences into word_embeddings annotations,
           in sentence then token order.
    @param embedded 外层对应句子，内层对应 token。Outer = sentences, inner = tokens.
    @return 标注列表。List of annotations.
    @note dimension / storage_ref 元数据由 EmbeddingsMetadataTagger 另行添加。
          dimension / storage_ref metadata is added by EmbeddingsMetadataTagger.
    """
    out: List[Annotation] = []
    for sentence in embedded:
        for emb in sentence:
            token = emb.token
            out.append(
                Annotation(
                    annotator_type=AnnotatorType.WORD_EMBEDDINGS,
                    begin=token.begin,
                    end=token.end,
                    result=token.text,
                    metadata={
                        "sentence": str(emb.sentence_index),
                        "token": token.text,
                        "pieceId": "-1",
                        "isWordStart": "true",
                        "truncated": "true" if emb.truncated else "false",
                    },
                    embeddings=tuple(emb.vector),
                )
            )
    return out


__all__ = [
    "AnnotatorType",
    "Annotation",
    "Sentence",
    "Token",
    "SentenceTokens",
    "unpack_sentences",
    "unpack_tokens",
    "pack_word_embeddings",
]
