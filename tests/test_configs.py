from __future__ import annotations

import json

import pytest

from bertembed import (
    ConfigurationError,
    EmbeddingsConfig,
    EmbeddingsConfigBuilder,
    ResourceNotFoundError,
    config_from_dict,
    load_config,
)


def test_defaults():
    cfg = EmbeddingsConfig()
    assert cfg.dimension == 768
    assert cfg.batch_size == 32
    assert cfg.max_sentence_length == 128
    assert cfg.case_sensitive is True
    assert cfg.pooling_layer == 0
    assert cfg.engine_config is None
    assert cfg.storage_ref == "bert_base_cased"


@pytest.mark.parametrize("layer", [0, -1, -2])
def test_valid_pooling_layers(layer):
    assert EmbeddingsConfig(pooling_layer=layer).pooling_layer == layer


@pytest.mark.parametrize("layer", [1, -3, 5])
def test_invalid_pooling_layer_is_rejected(layer):
    with pytest.raises(ConfigurationError, match="poolingLayer must be either 0, -1, or -2"):
        EmbeddingsConfig(pooling_layer=layer)


def test_sequence_length_is_capped_at_512():
    assert EmbeddingsConfig(max_sentence_length=512).max_sentence_length == 512
    with pytest.raises(ConfigurationError, match="512"):
        EmbeddingsConfig(max_sentence_length=513)


@pytest.mark.parametrize(
    "field, value",
    [
        ("max_sentence_length", 1),
        ("dimension", 0),
        ("batch_size", 0),
        ("num_workers", 0),
        ("max_input_chars_per_word", 0),
        ("storage_ref", ""),
        ("engine_config", "not-bytes"),
    ],
)
def test_other_invalid_values(field, value):
    with pytest.raises(ConfigurationError):
        EmbeddingsConfig(**{field: value})


def test_config_is_frozen():
    cfg = EmbeddingsConfig()
    with pytest.raises(AttributeError):
        cfg.dimension = 10  # type: ignore[misc]


def test_builder_builds_exactly_once():
    builder = EmbeddingsConfigBuilder().set_pooling_layer(-1).set_batch_size(8)
    assert not builder.is_built

    cfg = builder.build()

    assert cfg.pooling_layer == -1
    assert cfg.batch_size == 8
    assert builder.is_built
    with pytest.raises(ConfigurationError):
        builder.build()
    with pytest.raises(ConfigurationError):
        builder.set_dimension(12)


def test_builder_fails_fast_on_invalid_values():
    builder = EmbeddingsConfigBuilder()
    with pytest.raises(ConfigurationError):
        builder.set_max_sentence_length(1024)
    with pytest.raises(ConfigurationError):
        builder.set_pooling_layer(3)


def test_builder_starts_from_base():
    base = EmbeddingsConfig(dimension=16, storage_ref="tiny")
    cfg = EmbeddingsConfigBuilder(base=base).set_batch_size(4).build()
    assert (cfg.dimension, cfg.storage_ref, cfg.batch_size) == (16, "tiny", 4)


def test_config_from_dict_accepts_camel_case_aliases():
    cfg = config_from_dict(
        {
            "batchSize": 4,
            "maxSentenceLength": 64,
            "caseSensitive": False,
            "poolingLayer": -2,
            "storageRef": "bert_base_uncased",
            "configProtoBytes": [123, 125],
            "unknownKey": 1,
        }
    )
    assert cfg.batch_size == 4
    assert cfg.max_sentence_length == 64
    assert cfg.case_sensitive is False
    assert cfg.pooling_layer == -2
    assert cfg.storage_ref == "bert_base_uncased"
    assert cfg.engine_config == b"{}"


def test_engine_config_object_is_serialized():
    cfg = config_from_dict({"engine_config": {"device": "cpu"}})
    assert json.loads(cfg.engine_config.decode("utf-8")) == {"device": "cpu"}


def test_load_packaged_default():
    cfg = load_config("default")
    assert cfg == EmbeddingsConfig()


def test_load_config_from_path(tmp_path):
    path = tmp_path / "cfg.json"
    path.write_text(json.dumps({"dimension": 8, "poolingLayer": -1}), encoding="utf-8")
    cfg = load_config(path)
    assert (cfg.dimension, cfg.pooling_layer) == (8, -1)


def test_load_config_errors(tmp_path):
    with pytest.raises(ResourceNotFoundError):
        load_config(tmp_path / "missing.json")

    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(ResourceNotFoundError):
        load_config(bad)

    listed = tmp_path / "list.json"
    listed.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(listed)

    invalid = tmp_path / "invalid.json"
    invalid.write_text(json.dumps({"pooling_layer": 3}), encoding="utf-8")
    with pytest.raises(ConfigurationError):
        load_config(invalid)


@pytest.mark.parametrize(
    "build",
    [
        lambda: config_from_dict({"max_sentence_length": "128"}),
        lambda: EmbeddingsConfig(dimension=True),
        lambda: EmbeddingsConfig(batch_size=2.5),
        lambda: EmbeddingsConfig(pooling_layer="0"),
        lambda: EmbeddingsConfig(case_sensitive="yes"),
        lambda: EmbeddingsConfigBuilder().set_max_sentence_length("128").build(),
    ],
)
def test_non_integer_values_are_rejected(build):
    with pytest.raises(ConfigurationError):
        build()


def test_load_config_rejects_string_numbers(tmp_path):
    path = tmp_path / "strings.json"
    path.write_text(json.dumps({"max_sentence_length": "128"}), encoding="utf-8")
    with pytest.raises(ConfigurationError, match="max_sentence_length must be an integer"):
        load_config(path)
