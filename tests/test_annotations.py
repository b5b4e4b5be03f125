from __future__ import annotations

import pytest

import bertembed.data.annotations as annotations_module
from bertembed import Annotation, AnnotatorType, TokenEmbedding, Token
from bertembed.data import pack_word_embeddings, unpack_sentences, unpack_tokens

from tests.helpers import sentence_annotations


def test_annotation_dict_round_trip_accepts_both_keys():
    ann = Annotation(AnnotatorType.TOKEN, 0, 5, "hello", {"sentence": "0"})
    data = ann.to_dict()
    assert data["annotatorType"] == "token"
    assert Annotation.from_dict(data) == ann

    snake = dict(data)
    snake["annotator_type"] = snake.pop("annotatorType")
    assert Annotation.from_dict(snake) == ann


def test_annotation_without_type_is_rejected():
    with pytest.raises(ValueError):
        Annotation.from_dict({"begin": 0, "end": 1})


def test_unpack_groups_tokens_by_sentence():
    first, second = sentence_annotations("hello world"), sentence_annotations("world", 1, 12)

    sentences = unpack_tokens(second + first)

    assert [s.index for s in sentences] == [0, 1]
    assert [t.text for t in sentences[0].tokens] == ["hello", "world"]
    assert [(t.begin, t.end) for t in sentences[1].tokens] == [(12, 17)]
    assert sentences[1].sentence.content == "world"


def test_unpack_skips_sentences_without_tokens():
    annotations = [
        Annotation(AnnotatorType.DOCUMENT, 0, 5, "hello", {"sentence": "0"}),
        Annotation(AnnotatorType.DOCUMENT, 6, 11, "world", {"sentence": "1"}),
        Annotation(AnnotatorType.TOKEN, 6, 11, "world", {"sentence": "1"}),
    ]
    assert len(unpack_sentences(annotations)) == 2
    assert [s.index for s in unpack_tokens(annotations)] == [1]


def test_token_outside_sentence_is_rejected():
    annotations = [
        Annotation(AnnotatorType.DOCUMENT, 0, 5, "hello", {"sentence": "0"}),
        Annotation(AnnotatorType.TOKEN, 4, 9, "o wor", {"sentence": "0"}),
    ]
    with pytest.raises(ValueError):
        unpack_tokens(annotations)


def test_pack_word_embeddings_metadata():
    emb = TokenEmbedding(Token("hello", 0, 5), 3, 0, (1.0, 2.0), truncated=True)

    (ann,) = pack_word_embeddings([[emb]])

    assert ann.annotator_type == AnnotatorType.WORD_EMBEDDINGS
    assert (ann.begin, ann.end, ann.result) == (0, 5, "hello")
    assert ann.embeddings == (1.0, 2.0)
    assert ann.metadata == {
        "sentence": "3",
        "token": "hello",
        "pieceId": "-1",
        "isWordStart": "true",
        "truncated": "true",
    }


def test_unpack_keeps_upstream_token_order(monkeypatch):
    warnings = []

    class _RecordingLogger:
        def warning(self, msg, *args):
            warnings.append(msg % args)

    monkeypatch.setattr(annotations_module, "logger", _RecordingLogger())
    annotations = [
        Annotation(AnnotatorType.DOCUMENT, 0, 11, "hello world", {"sentence": "0"}),
        Annotation(AnnotatorType.TOKEN, 6, 11, "world", {"sentence": "0"}),
        Annotation(AnnotatorType.TOKEN, 0, 5, "hello", {"sentence": "0"}),
    ]

    (sentence,) = unpack_tokens(annotations)

    assert [t.text for t in sentence.tokens] == ["world", "hello"]
    assert len(warnings) == 1
    assert "keeping upstream order" in warnings[0]


def test_unpack_in_order_tokens_do_not_warn(monkeypatch):
    warnings = []

    class _RecordingLogger:
        def warning(self, msg, *args):
            warnings.append(msg % args)

    monkeypatch.setattr(annotations_module, "logger", _RecordingLogger())

    (sentence,) = unpack_tokens(sentence_annotations("hello world"))

    assert [t.text for t in sentence.tokens] == ["hello", "world"]
    assert warnings == []
