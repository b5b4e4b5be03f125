from __future__ import annotations

import pytest

from bertembed import EmbeddingsConfig, WordpieceTokenizer, WordpieceVocab

from tests.helpers import TOY_VOCAB, FakeEngine


@pytest.fixture
def vocab() -> WordpieceVocab:
    return WordpieceVocab.from_mapping(TOY_VOCAB)


@pytest.fixture
def tokenizer(vocab) -> WordpieceTokenizer:
    return WordpieceTokenizer(vocab)


@pytest.fixture
def small_config() -> EmbeddingsConfig:
    return EmbeddingsConfig(dimension=4, batch_size=2, max_sentence_length=16)


@pytest.fixture
def fake_engine() -> FakeEngine:
    return FakeEngine(hidden_size=4, num_layers=2)


@pytest.fixture
def vocab_file(tmp_path):
    path = tmp_path / "vocab.txt"
    path.write_text("\n".join(TOY_VOCAB) + "\n", encoding="utf-8")
    return path
