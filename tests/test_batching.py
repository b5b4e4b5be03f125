from __future__ import annotations

import pytest
import torch

from bertembed import BatchBuilder, ConfigurationError, SentenceTokens, Token, build_batches


def _tokenized(tokenizer, texts):
    sentences = []
    for idx, text in enumerate(texts):
        tokens = []
        pos = 0
        for word in text.split(" "):
            tokens.append(Token(word, pos, pos + len(word), idx))
            pos += len(word) + 1
        sentences.append(SentenceTokens(index=idx, tokens=tuple(tokens)))
    return tokenizer.tokenize(sentences)


def test_single_sentence_row(tokenizer, vocab):
    batches = build_batches(
        _tokenized(tokenizer, ["hello world"]),
        batch_size=32,
        max_length=128,
        cls_id=vocab.cls_id,
        sep_id=vocab.sep_id,
    )

    assert len(batches) == 1
    batch = batches[0]
    assert batch.input_ids.tolist() == [[0, 3, 4, 5, 1]]
    assert batch.token_type_ids.tolist() == [[0, 0, 0, 0, 0]]
    assert batch.attention_mask.tolist() == [[1, 1, 1, 1, 1]]
    assert batch.input_ids.dtype == torch.long
    assert batch.piece_counts == [3]


def test_rows_are_padded_to_longest_in_batch(tokenizer, vocab):
    builder = BatchBuilder(vocab.cls_id, vocab.sep_id)
    (batch,) = builder.build(_tokenized(tokenizer, ["world", "hello world"]), 4, 128)

    assert batch.input_ids.tolist() == [[0, 5, 1, 0, 0], [0, 3, 4, 5, 1]]
    assert batch.attention_mask.tolist() == [[1, 1, 1, 0, 0], [1, 1, 1, 1, 1]]
    assert batch.seq_len == 5


def test_batches_follow_input_order(tokenizer, vocab):
    tokenized = _tokenized(tokenizer, ["hello", "world", "hello world", "world"])
    batches = BatchBuilder(vocab.cls_id, vocab.sep_id)(tokenized, 3, 128)

    assert [len(b) for b in batches] == [3, 1]
    assert [b.offset for b in batches] == [0, 3]
    flattened = [s.sentence_index for b in batches for s in b.sentences]
    assert flattened == [0, 1, 2, 3]


def test_truncation_keeps_cls_and_sep(tokenizer, vocab):
    builder = BatchBuilder(vocab.cls_id, vocab.sep_id)
    (batch,) = builder.build(_tokenized(tokenizer, ["hello world"]), 1, 4)

    assert batch.input_ids.tolist() == [[0, 3, 4, 1]]
    assert batch.piece_counts == [2]
    assert batch.seq_len <= 4


def test_minimum_length_keeps_only_special_tokens(tokenizer, vocab):
    (batch,) = build_batches(_tokenized(tokenizer, ["hello"]), 1, 2, vocab.cls_id, vocab.sep_id)
    assert batch.input_ids.tolist() == [[0, 1]]
    assert batch.piece_counts == [0]


def test_batching_is_deterministic(tokenizer, vocab):
    tokenized = _tokenized(tokenizer, ["hello world", "world", "hello"])
    first = build_batches(tokenized, 2, 8, vocab.cls_id, vocab.sep_id)
    second = build_batches(tokenized, 2, 8, vocab.cls_id, vocab.sep_id)

    assert len(first) == len(second)
    for a, b in zip(first, second):
        assert torch.equal(a.input_ids, b.input_ids)
        assert torch.equal(a.attention_mask, b.attention_mask)


def test_empty_input_yields_no_batches(vocab):
    assert build_batches([], 4, 16, vocab.cls_id, vocab.sep_id) == []


@pytest.mark.parametrize("batch_size, max_length", [(0, 16), (4, 1)])
def test_invalid_arguments(vocab, batch_size, max_length):
    with pytest.raises(ConfigurationError):
        build_batches([], batch_size, max_length, vocab.cls_id, vocab.sep_id)
