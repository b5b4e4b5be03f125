from __future__ import annotations

import pytest

from bertembed import Annotation, AnnotatorType, ConfigurationError, EmbeddingsMetadataTagger


def test_tag_adds_dimension_and_ref_without_mutating_input():
    tagger = EmbeddingsMetadataTagger(dimension=768, storage_ref="bert_base_cased")
    ann = Annotation(AnnotatorType.WORD_EMBEDDINGS, 0, 5, "hello", {"sentence": "0"})

    (tagged,) = tagger.tag_all([ann])

    assert tagged.metadata == {
        "sentence": "0",
        "dimension": "768",
        "storage_ref": "bert_base_cased",
    }
    assert ann.metadata == {"sentence": "0"}


def test_consistency_check():
    tagger = EmbeddingsMetadataTagger(dimension=4, storage_ref="a")

    EmbeddingsMetadataTagger.check_consistency(tagger.column_metadata(), "a")
    EmbeddingsMetadataTagger.check_consistency({"storage_ref": "a"}, "a")

    with pytest.raises(ConfigurationError):
        EmbeddingsMetadataTagger.check_consistency({"storage_ref": "b"}, "a")
    with pytest.raises(ConfigurationError):
        EmbeddingsMetadataTagger.check_consistency({}, "a")
