"""
@file vocab.py
@brief WordPiece 词表：不可变、稠密 ID 的子词映射，以及按行加载 vocab.txt。
       WordPiece vocabulary: an immutable subword mapping with dense ids, plus
       line-oriented loading of vocab.txt.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from bertembed.errors import ConfigurationError, ResourceNotFoundError
from bertembed.utils.logging import get_logger

logger = get_logger(__name__)


# ============================================================
# 配置 Configuration
# ============================================================


@dataclass(frozen=True)
class VocabConfig:
    """
    @brief 特殊符号与续接前缀配置。Special tokens and continuation prefix.
    @param cls_token 句首分类符号。Classification (sentence start) token.
    @param sep_token 句尾分隔符号。Separator (sentence end) token.
    @param unk_token 未登录子词符号。Unknown subword token.
    @param continuation_prefix 非词首子词前缀。Prefix of non-initial pieces.
    """

    cls_token: str = "[CLS]"
    sep_token: str = "[SEP]"
    unk_token: str = "[UNK]"
    continuation_prefix: str = "##"


class WordpieceVocab:
    """
    @brief 构造后不可变的子词词表，ID 稠密（0..n-1），直接用作张量下标。
           Subword vocabulary, immutable after construction. Ids are dense (0..n-1)
           and used directly as tensor indices.
    """

    def __init__(
        self,
        stoi: Mapping[str, int],
        itos: Sequence[str],
        cfg: Optional[VocabConfig] = None,
    ) -> None:
        """
        @brief 使用内部映射直接构造，推荐通过 from_mapping / load_vocab 创建。
               Construct from internal mappings; prefer from_mapping / load_vocab.
        @param stoi 子词→ID。Subword to id.
        @param itos ID→子词，长度即词表大小。Id to subword; its length is the size.
        @param cfg 特殊符号配置。Special token configuration.
        @throws ConfigurationError 缺少 [CLS]/[SEP] 或 ID 越界。
                Missing [CLS]/[SEP] or out-of-range ids.
        """
        self.cfg = cfg or VocabConfig()
        self._itos: Tuple[str, ...] = tuple(itos)
        self._stoi = MappingProxyType(dict(stoi))

        size = len(self._itos)
        for piece, idx in self._stoi.items():
            if not 0 <= idx < size:
                raise ConfigurationError(
                    f"vocabulary id {idx} for {piece!r} is outside the dense range [0, {size})"
                )

        missing = [t for t in (self.cfg.cls_token, self.cfg.sep_token) if t not in self._stoi]
        if missing:
            raise ConfigurationError(f"vocabulary is missing required tokens: {missing}")

    @classmethod
    def from_mapping(
        cls, mapping: Mapping[str, int], cfg: Optional[VocabConfig] = None
    ) -> "WordpieceVocab":
        """
        @brief 由 子词→ID 字典构造，要求 ID 恰好为 0..n-1。
               Build from a subword→id dict whose ids are exactly 0..n-1.
        @example
            >>> vocab = WordpieceVocab.from_mapping({"[CLS]": 0, "[SEP]": 1, "he": 2})
        """
        ids = sorted(mapping.values())
        if ids != list(range(len(ids))):
            raise ConfigurationError(
                "vocabulary ids must be dense and unique (0..n-1)"
            )
        itos: List[str] = [""] * len(ids)
        for piece, idx in mapping.items():
            itos[idx] = piece
        return cls(stoi=mapping, itos=itos, cfg=cfg)

    # ------------------------------------------------------------
    # 基本属性 Basic properties
    # ------------------------------------------------------------
    def __len__(self) -> int:
        return len(self._itos)

    def __contains__(self, piece: object) -> bool:
        return piece in self._stoi

    def __iter__(self) -> Iterator[str]:
        return iter(self._itos)

    @property
    def stoi(self) -> Mapping[str, int]:
        """@brief 只读 子词→ID 视图。Read-only subword→id view."""
        return self._stoi

    @property
    def cls_id(self) -> int:
        return self._stoi[self.cfg.cls_token]

    @property
    def sep_id(self) -> int:
        return self._stoi[self.cfg.sep_token]

    @property
    def unk_id(self) -> Optional[int]:
        return self._stoi.get(self.cfg.unk_token)

    # ------------------------------------------------------------
    # 查找接口 Lookup APIs
    # ------------------------------------------------------------
    def get(self, piece: str) -> Optional[int]:
        """@brief 查询子词 ID，不存在返回 None。Look up a subword id, None if absent."""
        return self._stoi.get(piece)

    def id_to_token(self, idx: int) -> str:
        if 0 <= idx < len(self._itos):
            return self._itos[idx]
        raise IndexError(f"vocabulary id {idx} out of range [0, {len(self._itos)})")

    def decode(self, ids: Sequence[int]) -> List[str]:
        return [self.id_to_token(i) for i in ids]

    # ------------------------------------------------------------
    # 序列化 Serialization helpers
    # ------------------------------------------------------------
    def to_dict(self) -> dict:
        return {"itos": list(self._itos)}

    @classmethod
    def from_dict(cls, data: dict, cfg: Optional[VocabConfig] = None) -> "WordpieceVocab":
        itos: List[str] = list(data["itos"])
        return cls(stoi=_first_occurrence_index(itos), itos=itos, cfg=cfg)


def _first_occurrence_index(lines: Sequence[str]) -> Dict[str, int]:
    stoi: Dict[str, int] = {}
    for idx, piece in enumerate(lines):
        stoi.setdefault(piece, idx)
    return stoi


# ============================================================
# 加载 Loading
# ============================================================


def load_vocab(
    path: Union[str, Path], cfg: Optional[VocabConfig] = None
) -> WordpieceVocab:
    """
    @brief 从按行组织的文本资源加载词表：行号即 ID，行内容即子词。
           Load a vocabulary from a line-oriented resource: line number = id,
           line content = subword.
    @param path vocab.txt 路径。Path to vocab.txt.
    @param cfg 特殊符号配置。Special token configuration.
    @return WordpieceVocab 实例。WordpieceVocab instance.
    @throws ResourceNotFoundError 文件缺失、为空或缺少 [CLS]/[SEP]。
            Missing or empty file, or [CLS]/[SEP] absent.
    @note 重复行保留首次出现的 ID，后续重复只占位以保持 ID 稠密。
          Duplicate lines keep the id of their first occurrence; later duplicates
          only hold their slot so ids stay dense.
    """
    cfg = cfg or VocabConfig()
    p = Path(path)
    if not p.is_file():
        raise ResourceNotFoundError(p, "vocabulary file not found")

    with p.open("r", encoding="utf-8") as f:
        lines = [line.rstrip("\r\n") for line in f]

    # 去掉文件末尾的空行。Drop trailing blank lines at end of file.
    while lines and not lines[-1]:
        lines.pop()

    if not lines:
        raise ResourceNotFoundError(p, "vocabulary file is empty")

    stoi = _first_occurrence_index(lines)
    duplicates = len(lines) - len(stoi)
    if duplicates:
        logger.warning("Vocabulary %s contains %d duplicate lines", p, duplicates)

    missing = [t for t in (cfg.cls_token, cfg.sep_token) if t not in stoi]
    if missing:
        raise ResourceNotFoundError(p, f"vocabulary is missing required tokens {missing}")

    vocab = WordpieceVocab(stoi=stoi, itos=lines, cfg=cfg)
    logger.info("Vocabulary loaded: size=%d from %s", len(vocab), p)
    return vocab
