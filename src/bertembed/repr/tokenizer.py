"""
@file tokenizer.py
@brief WordPiece 子词切分：在上游 token 边界内做基础规范化（空白 / 标点 / CJK 切分、可选小写），
       再按词表做贪心最长前缀匹配，并记录每个子词对应的原始字符区间。
       WordPiece tokenization: basic normalization inside each upstream token
       (whitespace / punctuation / CJK splitting, optional lowercasing), then greedy
       longest-prefix matching against the vocabulary, tracking the original
       character span of every piece.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from bertembed.data.annotations import SentenceTokens, Token
from bertembed.errors import ConfigurationError
from bertembed.repr.vocab import WordpieceVocab
from bertembed.utils.logging import get_logger

logger = get_logger(__name__)


# ============================================================
# 数据结构 Data structures
# ============================================================


@dataclass(frozen=True)
class WordpiecePart:
    """
    @brief 单个子词单元。One subword unit.
    @param wordpiece 词表中的子词字符串（词内非首段带 ## 前缀）。
           Vocabulary string (pieces inside a word carry the ## prefix).
    @param piece_id 词表 ID。Vocabulary id.
    @param begin 原始文本起始偏移。Begin offset in the original text.
    @param end 原始文本结束偏移（不含）。End offset in the original text (exclusive).
    @param token_index 所属 token 在句中的位置。Position of the owning token in its sentence.
    @param is_continuation 是否为所属 token 的非首个子词。
           Whether this is a non-first piece of its token.
    """

    wordpiece: str
    piece_id: int
    begin: int
    end: int
    token_index: int
    is_continuation: bool


@dataclass(frozen=True)
class TokenizedSentence:
    """
    @brief 一个句子的子词序列，及其原始 token。
           The wordpiece sequence of one sentence, with its original tokens.
    """

    sentence_index: int
    tokens: Tuple[Token, ...]
    parts: Tuple[WordpiecePart, ...]

    @property
    def piece_ids(self) -> List[int]:
        return [p.piece_id for p in self.parts]

    @property
    def wordpieces(self) -> List[str]:
        return [p.wordpiece for p in self.parts]

    def parts_of(self, token_index: int) -> List[WordpiecePart]:
        return [p for p in self.parts if p.token_index == token_index]


@dataclass(frozen=True)
class BasicWord:
    """
    @brief 规范化后的基础词；offsets[i] 为第 i 个规范化字符在原文中的位置。
           A normalized basic word; offsets[i] is the original position of the
           i-th normalized character.
    """

    text: str
    offsets: Tuple[int, ...]

    @property
    def begin(self) -> int:
        return self.offsets[0]

    @property
    def end(self) -> int:
        return self.offsets[-1] + 1


# ============================================================
# 字符分类 Character classes
# ============================================================


def _is_whitespace(ch: str) -> bool:
    if ch in (" ", "\t", "\n", "\r"):
        return True
    return unicodedata.category(ch) == "Zs"


def _is_control(ch: str) -> bool:
    # \t \n \r 按空白处理。
    if ch in ("\t", "\n", "\r"):
        return False
    return unicodedata.category(ch).startswith("C")


def _is_punctuation(ch: str) -> bool:
    cp = ord(ch)
    # 所有非字母数字的 ASCII 字符都视为标点，例如 "^"、"$"、"`"。
    # All non-alphanumeric ASCII is treated as punctuation, e.g. "^", "$", "`".
    if 33 <= cp <= 47 or 58 <= cp <= 64 or 91 <= cp <= 96 or 123 <= cp <= 126:
        return True
    return unicodedata.category(ch).startswith("P")


def _is_chinese_char(cp: int) -> bool:
    return (
        0x4E00 <= cp <= 0x9FFF
        or 0x3400 <= cp <= 0x4DBF
        or 0x20000 <= cp <= 0x2A6DF
        or 0x2A700 <= cp <= 0x2B73F
        or 0x2B740 <= cp <= 0x2B81F
        or 0x2B820 <= cp <= 0x2CEAF
        or 0xF900 <= cp <= 0xFAFF
        or 0x2F800 <= cp <= 0x2FA1F
    )


# ============================================================
# 基础切分 Basic tokenizer
# ============================================================


class BasicTokenizer:
    """
    @brief 在单个 token 内部做规范化与切分，不跨越 token 边界。
           Normalizes and splits inside a single token, never across token boundaries.
    @param case_sensitive False 时逐字符小写化。Lowercase character by character when False.
    """

    def __init__(self, case_sensitive: bool = True) -> None:
        self.case_sensitive = case_sensitive

    def _normalize(self, ch: str) -> str:
        return ch if self.case_sensitive else ch.lower()

    def split(self, token: Token) -> List[BasicWord]:
        """
        @brief 将 token 文本切分为基础词。Split token text into basic words.
        @param token 上游 token。Upstream token.
        @return 基础词列表；纯空白 / 控制字符的 token 返回空列表。
                Basic words; empty for tokens made only of whitespace / control chars.
        """
        words: List[BasicWord] = []
        chars: List[str] = []
        offsets: List[int] = []

        def flush() -> None:
            if chars:
                words.append(BasicWord("".join(chars), tuple(offsets)))
                chars.clear()
                offsets.clear()

        for i, ch in enumerate(token.text):
            pos = token.begin + i
            cp = ord(ch)
            if cp == 0 or cp == 0xFFFD or _is_control(ch) or _is_whitespace(ch):
                flush()
                continue

            norm = self._normalize(ch)
            if _is_punctuation(ch) or _is_chinese_char(cp):
                flush()
                words.append(BasicWord(norm, (pos,) * len(norm)))
                continue

            chars.append(norm)
            # 小写化可能改变长度（如 'İ'），逐字符记录原始位置。
            offsets.extend([pos] * len(norm))

        flush()
        return words


# ============================================================
# 贪心最长匹配 Greedy longest-match encoder
# ============================================================


class WordpieceEncoder:
    """
    @brief 对基础词做贪心最长前缀匹配。Greedy longest-prefix matching over basic words.
    @param vocab 子词词表。Subword vocabulary.
    @param max_input_chars_per_word 超长词直接映射为 [UNK]。Longer words map to [UNK].
    @throws ConfigurationError 词表中没有 [UNK]。The vocabulary has no [UNK].
    """

    def __init__(self, vocab: WordpieceVocab, max_input_chars_per_word: int = 200) -> None:
        unk_id = vocab.unk_id
        if unk_id is None:
            raise ConfigurationError(
                f"vocabulary has no unknown token {vocab.cfg.unk_token!r}; "
                "wordpiece encoding needs a fallback id"
            )
        self.vocab = vocab
        self.unk_id: int = unk_id
        self.unk_token = vocab.cfg.unk_token
        self.prefix = vocab.cfg.continuation_prefix
        self.max_input_chars_per_word = max_input_chars_per_word

    def encode(self, word: BasicWord) -> List[Tuple[str, int, int, int]]:
        """
        @brief 将基础词切为子词，返回 (子词, ID, begin, end) 列表。
               Split a basic word into (piece, id, begin, end) tuples.
        @note 任一位置无法匹配时，整个词映射为单个 [UNK]。
              If any position cannot be matched, the whole word becomes one [UNK].
        """
        text = word.text
        unknown = [(self.unk_token, self.unk_id, word.begin, word.end)]
        if len(text) > self.max_input_chars_per_word:
            return unknown

        pieces: List[Tuple[str, int, int, int]] = []
        start = 0
        while start < len(text):
            end = len(text)
            match: Optional[Tuple[str, int]] = None
            while start < end:
                # 小写化展开出的多个字符共享同一原始位置，子词不能在它们之间断开。
                if end < len(text) and word.offsets[end] == word.offsets[end - 1]:
                    end -= 1
                    continue
                candidate = text[start:end]
                if start > 0:
                    candidate = self.prefix + candidate
                idx = self.vocab.get(candidate)
                if idx is not None:
                    match = (candidate, idx)
                    break
                end -= 1

            if match is None:
                return unknown

            pieces.append((match[0], match[1], word.offsets[start], word.offsets[end - 1] + 1))
            start = end

        return pieces


# ============================================================
# 对外主类 Public tokenizer
# ============================================================


class WordpieceTokenizer:
    """
    @brief 组合 BasicTokenizer 与 WordpieceEncoder，把句子的 token 转为子词序列。
           Combines BasicTokenizer and WordpieceEncoder to turn a sentence's tokens
           into a wordpiece sequence.

    @note
        - 每个输入 token 至少产生一个子词；无法切分的 token 映射为 [UNK]。
          Every input token yields at least one piece; unsplittable tokens map to [UNK].
        - 纯函数：无副作用、无 I/O。Pure: no side effects, no I/O.
    """

    def __init__(
        self,
        vocab: WordpieceVocab,
        case_sensitive: bool = True,
        max_input_chars_per_word: int = 200,
    ) -> None:
        self.vocab = vocab
        self.basic = BasicTokenizer(case_sensitive=case_sensitive)
        self.encoder = WordpieceEncoder(vocab, max_input_chars_per_word)

    def tokenize_token(self, token: Token, token_index: int) -> List[WordpiecePart]:
        raw: List[Tuple[str, int, int, int]] = []
        for word in self.basic.split(token):
            raw.extend(self.encoder.encode(word))

        if not raw:
            raw = [(self.encoder.unk_token, self.encoder.unk_id, token.begin, token.end)]

        return [
            WordpiecePart(
                wordpiece=piece,
                piece_id=idx,
                begin=begin,
                end=end,
                token_index=token_index,
                is_continuation=k > 0,
            )
            for k, (piece, idx, begin, end) in enumerate(raw)
        ]

    def tokenize_sentence(self, sentence: SentenceTokens) -> TokenizedSentence:
        parts: List[WordpiecePart] = []
        for token_index, token in enumerate(sentence.tokens):
            parts.extend(self.tokenize_token(token, token_index))
        return TokenizedSentence(
            sentence_index=sentence.index,
            tokens=tuple(sentence.tokens),
            parts=tuple(parts),
        )

    def tokenize(self, sentences: Sequence[SentenceTokens]) -> List[TokenizedSentence]:
        """
        @brief 对一组句子做子词切分，保持输入顺序。
               Tokenize a sequence of sentences, preserving input order.
        """
        return [self.tokenize_sentence(s) for s in sentences]
