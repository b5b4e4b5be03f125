from __future__ import annotations

import pytest

from bertembed import ConfigurationError, SentenceTokens, Token, WordpieceTokenizer, WordpieceVocab
from bertembed.repr.tokenizer import BasicTokenizer

from tests.helpers import TOY_VOCAB


def _sentence(text, spans, index=0):
    tokens = tuple(Token(text[b:e], b, e, index) for b, e in spans)
    return SentenceTokens(index=index, tokens=tokens)


def test_hello_world_pieces(tokenizer):
    sentence = _sentence("hello world", [(0, 5), (6, 11)])

    (tokenized,) = tokenizer.tokenize([sentence])

    assert tokenized.wordpieces == ["he", "##llo", "world"]
    assert tokenized.piece_ids == [3, 4, 5]
    assert [p.token_index for p in tokenized.parts] == [0, 0, 1]
    assert [p.is_continuation for p in tokenized.parts] == [False, True, False]
    assert [(p.begin, p.end) for p in tokenized.parts] == [(0, 2), (2, 5), (6, 11)]


def test_every_token_gets_at_least_one_piece(tokenizer):
    text = "hello xyz world"
    sentence = _sentence(text, [(0, 5), (6, 9), (10, 15)])

    (tokenized,) = tokenizer.tokenize([sentence])

    for idx in range(len(sentence.tokens)):
        assert tokenized.parts_of(idx)
    assert tokenized.parts_of(1)[0].wordpiece == "[UNK]"
    assert (tokenized.parts_of(1)[0].begin, tokenized.parts_of(1)[0].end) == (6, 9)


def test_piece_spans_stay_inside_token(tokenizer):
    text = "hello, world!"
    sentence = _sentence(text, [(0, 6), (7, 13)])

    (tokenized,) = tokenizer.tokenize([sentence])

    for part in tokenized.parts:
        token = sentence.tokens[part.token_index]
        assert token.begin <= part.begin < part.end <= token.end


DOTTED_I_VOCAB = dict(TOY_VOCAB, **{"i": 6, "##\u0307": 7, "##x": 8})


@pytest.mark.parametrize(
    "text, spans, case_sensitive, mapping",
    [
        ("hello world", [(0, 5), (6, 11)], True, TOY_VOCAB),
        ("hello, world!", [(0, 6), (7, 13)], True, TOY_VOCAB),
        ("hello xyz world", [(0, 5), (6, 9), (10, 15)], True, TOY_VOCAB),
        ("中文hello", [(0, 7)], True, TOY_VOCAB),
        ("HeLLo WORLD", [(0, 5), (6, 11)], False, TOY_VOCAB),
        ("İx hello", [(0, 2), (3, 8)], False, DOTTED_I_VOCAB),
        ("xİhe", [(0, 4)], False, DOTTED_I_VOCAB),
    ],
)
def test_piece_spans_rebuild_token_text(text, spans, case_sensitive, mapping):
    tokenizer = WordpieceTokenizer(WordpieceVocab.from_mapping(mapping), case_sensitive=case_sensitive)
    sentence = _sentence(text, spans)

    (tokenized,) = tokenizer.tokenize([sentence])

    for idx, token in enumerate(sentence.tokens):
        rebuilt = "".join(text[p.begin : p.end] for p in tokenized.parts_of(idx))
        assert rebuilt == token.text


def test_lowercase_expansion_is_never_split():
    tokenizer = WordpieceTokenizer(
        WordpieceVocab.from_mapping(DOTTED_I_VOCAB), case_sensitive=False
    )

    (tokenized,) = tokenizer.tokenize([_sentence("İx", [(0, 2)])])

    # "İ" 小写为 "i" + U+0307，两者都来自位置 0。
    assert tokenized.wordpieces == ["[UNK]"]
    assert [(p.begin, p.end) for p in tokenized.parts] == [(0, 2)]


def test_lowercase_expansion_kept_whole_in_one_piece():
    mapping = dict(TOY_VOCAB, **{"i\u0307": 6, "##x": 7})
    tokenizer = WordpieceTokenizer(WordpieceVocab.from_mapping(mapping), case_sensitive=False)

    (tokenized,) = tokenizer.tokenize([_sentence("İx", [(0, 2)])])

    assert tokenized.wordpieces == ["i\u0307", "##x"]
    assert [(p.begin, p.end) for p in tokenized.parts] == [(0, 1), (1, 2)]


def test_punctuation_is_split_inside_token(tokenizer):
    sentence = _sentence("hello,", [(0, 6)])

    (tokenized,) = tokenizer.tokenize([sentence])

    # "," 不在词表中，单独成为一个 [UNK]。
    assert tokenized.wordpieces == ["he", "##llo", "[UNK]"]
    assert (tokenized.parts[-1].begin, tokenized.parts[-1].end) == (5, 6)
    assert tokenized.parts[-1].is_continuation is True


def test_case_insensitive_lowercases_but_keeps_offsets(vocab):
    tokenizer = WordpieceTokenizer(vocab, case_sensitive=False)
    sentence = _sentence("HeLLo World", [(0, 5), (6, 11)])

    (tokenized,) = tokenizer.tokenize([sentence])

    assert tokenized.piece_ids == [3, 4, 5]
    assert [(p.begin, p.end) for p in tokenized.parts] == [(0, 2), (2, 5), (6, 11)]


def test_case_sensitive_does_not_match_uppercase(tokenizer):
    (tokenized,) = tokenizer.tokenize([_sentence("Hello", [(0, 5)])])
    assert tokenized.wordpieces == ["[UNK]"]


def test_cjk_characters_become_separate_words():
    words = BasicTokenizer().split(Token("中文ab", 10, 14))
    assert [(w.text, w.begin, w.end) for w in words] == [
        ("中", 10, 11),
        ("文", 11, 12),
        ("ab", 12, 14),
    ]


def test_whitespace_only_token_maps_to_unk(tokenizer):
    (tokenized,) = tokenizer.tokenize([_sentence("a   b", [(1, 4)])])
    assert tokenized.wordpieces == ["[UNK]"]
    assert (tokenized.parts[0].begin, tokenized.parts[0].end) == (1, 4)


def test_long_word_maps_to_unk(vocab):
    tokenizer = WordpieceTokenizer(vocab, max_input_chars_per_word=4)
    (tokenized,) = tokenizer.tokenize([_sentence("hello", [(0, 5)])])
    assert tokenized.wordpieces == ["[UNK]"]


def test_tokenizer_requires_unk():
    vocab = WordpieceVocab.from_mapping({"[CLS]": 0, "[SEP]": 1, "he": 2})
    with pytest.raises(ConfigurationError):
        WordpieceTokenizer(vocab)


def test_tokenize_preserves_sentence_order(tokenizer):
    sentences = [
        _sentence("world", [(0, 5)], index=0),
        _sentence("hello", [(0, 5)], index=1),
    ]
    result = tokenizer.tokenize(sentences)
    assert [t.sentence_index for t in result] == [0, 1]
    assert [t.wordpieces for t in result] == [["world"], ["he", "##llo"]]
