"""
@file configs.py
@brief 嵌入标注器配置：不可变的 EmbeddingsConfig、只能构建一次的 Builder，以及 JSON 加载。
       Annotator configuration: immutable EmbeddingsConfig, a build-once builder,
       and JSON loading.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

from bertembed.errors import ConfigurationError, ResourceNotFoundError
from bertembed.utils.logging import get_logger

logger = get_logger(__name__)

#: BERT 位置编码可训练，序列长度不能超过 512。
#: BERT positional embeddings are trained up to 512 positions.
MAX_SUPPORTED_LENGTH = 512

#: 合法的 pooling 层：0 = 嵌入层，-1 = 最后一层，-2 = 倒数第二层。
#: Valid pooling layers: 0 = embeddings, -1 = last layer, -2 = second-to-last.
VALID_POOLING_LAYERS = (0, -1, -2)

_INT_FIELDS = (
    "dimension",
    "batch_size",
    "max_sentence_length",
    "pooling_layer",
    "num_workers",
    "max_input_chars_per_word",
)


# ============================================================
# 不可变配置 Immutable configuration
# ============================================================


@dataclass(frozen=True)
class EmbeddingsConfig:
    """
    @brief BERT 词向量标注器配置，构造时即完成校验，之后不可修改。
           Configuration of the BERT word-embeddings annotator. Validated at
           construction, immutable afterwards.
    @param dimension 输出向量维度。Output vector length.
    @param batch_size 每个批次的最大句子数。Max sentences per batch.
    @param max_sentence_length 含 [CLS]/[SEP] 的最大 wordpiece 长度（≤512）。
           Max wordpiece length including [CLS]/[SEP] (≤512).
    @param case_sensitive False 时在匹配词表前小写化。Lowercase before matching when False.
    @param pooling_layer 取哪一层作为输出：0 / -1 / -2。Output layer: 0 / -1 / -2.
    @param engine_config 透传给推理引擎的不透明字节。Opaque bytes passed to the engine.
    @param storage_ref 模型引用字符串，下游用于一致性检查。
           Model reference string used downstream for consistency checks.
    @param num_workers >1 时用线程池并行调度批次。Thread-pool batch dispatch when >1.
    @param max_input_chars_per_word 超过该长度的词直接映射为 [UNK]。
           Words longer than this map straight to [UNK].
    """

    dimension: int = 768
    batch_size: int = 32
    max_sentence_length: int = 128
    case_sensitive: bool = True
    pooling_layer: int = 0
    engine_config: Optional[bytes] = None
    storage_ref: str = "bert_base_cased"
    num_workers: int = 1
    max_input_chars_per_word: int = 200

    def __post_init__(self) -> None:
        # bool 是 int 的子类，需单独排除。bool is an int subclass and is rejected explicitly.
        for name in _INT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(
                    f"{name} must be an integer, got {type(value).__name__} {value!r}"
                )
        if not isinstance(self.case_sensitive, bool):
            raise ConfigurationError(
                f"case_sensitive must be a boolean, got {type(self.case_sensitive).__name__}"
            )
        if not isinstance(self.storage_ref, str):
            raise ConfigurationError(
                f"storage_ref must be a string, got {type(self.storage_ref).__name__}"
            )
        if self.pooling_layer not in VALID_POOLING_LAYERS:
            raise ConfigurationError(
                "poolingLayer must be either 0, -1, or -2: first layer (embeddings), "
                f"last layer, second-to-last layer; got {self.pooling_layer!r}"
            )
        if self.max_sentence_length > MAX_SUPPORTED_LENGTH:
            raise ConfigurationError(
                "BERT models do not support sequences longer than 512 because of "
                f"trainable positional embeddings; got {self.max_sentence_length}"
            )
        if self.max_sentence_length < 2:
            raise ConfigurationError(
                "max_sentence_length must leave room for [CLS] and [SEP]; "
                f"got {self.max_sentence_length}"
            )
        if self.dimension <= 0:
            raise ConfigurationError(f"dimension must be positive, got {self.dimension}")
        if self.batch_size < 1:
            raise ConfigurationError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.num_workers < 1:
            raise ConfigurationError(f"num_workers must be >= 1, got {self.num_workers}")
        if self.max_input_chars_per_word < 1:
            raise ConfigurationError(
                "max_input_chars_per_word must be >= 1, "
                f"got {self.max_input_chars_per_word}"
            )
        if not self.storage_ref:
            raise ConfigurationError("storage_ref must be a non-empty string")
        if self.engine_config is not None and not isinstance(self.engine_config, bytes):
            raise ConfigurationError(
                f"engine_config must be bytes, got {type(self.engine_config).__name__}"
            )


# ============================================================
# Builder：只能 finalize 一次
# ============================================================


class EmbeddingsConfigBuilder:
    """
    @brief 流式构建 EmbeddingsConfig；build() 只能调用一次，之后任何修改都会报错。
           Fluent builder for EmbeddingsConfig. build() may run exactly once;
           any later mutation raises ConfigurationError.
    @example
        >>> cfg = (EmbeddingsConfigBuilder()
        ...        .set_pooling_layer(-1)
        ...        .set_batch_size(8)
        ...        .build())
    """

    def __init__(self, base: Optional[EmbeddingsConfig] = None) -> None:
        base = base or EmbeddingsConfig()
        self._values: Dict[str, Any] = {f.name: getattr(base, f.name) for f in fields(base)}
        self._built: Optional[EmbeddingsConfig] = None

    def _set(self, name: str, value: Any) -> "EmbeddingsConfigBuilder":
        if self._built is not None:
            raise ConfigurationError(
                f"configuration already finalized; cannot set {name!r}"
            )
        self._values[name] = value
        return self

    def set_dimension(self, value: int) -> "EmbeddingsConfigBuilder":
        return self._set("dimension", value)

    def set_batch_size(self, value: int) -> "EmbeddingsConfigBuilder":
        return self._set("batch_size", value)

    def set_max_sentence_length(self, value: int) -> "EmbeddingsConfigBuilder":
        # 尽早失败：不等到 build() 才发现超过 512。
        if isinstance(value, int) and value > MAX_SUPPORTED_LENGTH:
            raise ConfigurationError(
                "BERT models do not support sequences longer than 512 because of "
                f"trainable positional embeddings; got {value}"
            )
        return self._set("max_sentence_length", value)

    def set_case_sensitive(self, value: bool) -> "EmbeddingsConfigBuilder":
        return self._set("case_sensitive", value)

    def set_pooling_layer(self, value: int) -> "EmbeddingsConfigBuilder":
        if value not in VALID_POOLING_LAYERS:
            raise ConfigurationError(
                f"poolingLayer must be either 0, -1, or -2; got {value!r}"
            )
        return self._set("pooling_layer", value)

    def set_engine_config(self, value: Optional[bytes]) -> "EmbeddingsConfigBuilder":
        return self._set("engine_config", value)

    def set_storage_ref(self, value: str) -> "EmbeddingsConfigBuilder":
        return self._set("storage_ref", value)

    def set_num_workers(self, value: int) -> "EmbeddingsConfigBuilder":
        return self._set("num_workers", value)

    def set_max_input_chars_per_word(self, value: int) -> "EmbeddingsConfigBuilder":
        return self._set("max_input_chars_per_word", value)

    @property
    def is_built(self) -> bool:
        return self._built is not None

    def build(self) -> EmbeddingsConfig:
        """
        @brief 校验并冻结配置。Validate and freeze the configuration.
        @return EmbeddingsConfig 实例。The EmbeddingsConfig instance.
        @throws ConfigurationError 重复调用或取值非法。On a second call or invalid values.
        """
        if self._built is not None:
            raise ConfigurationError("EmbeddingsConfigBuilder.build() may only be called once")
        self._built = EmbeddingsConfig(**self._values)
        return self._built


# ============================================================
# 内部工具 Helpers
# ============================================================

# 兼容 camelCase 参数名。camelCase parameter names are accepted as aliases.
_ALIASES: Dict[str, str] = {
    "batchSize": "batch_size",
    "maxSentenceLength": "max_sentence_length",
    "caseSensitive": "case_sensitive",
    "poolingLayer": "pooling_layer",
    "configProtoBytes": "engine_config",
    "engineConfig": "engine_config",
    "storageRef": "storage_ref",
    "numWorkers": "num_workers",
    "maxInputCharsPerWord": "max_input_chars_per_word",
}


def _coerce_engine_config(raw: Union[None, str, bytes, Sequence[int], Dict[str, Any]]) -> Optional[bytes]:
    """
    @brief 将 JSON 中的 engine_config 统一转换为 bytes。
           Normalize engine_config from JSON into bytes.
    @note 支持字符串、整数列表（原 configProtoBytes 形式，允许有符号字节）以及对象。
          Accepts strings, int lists (signed configProtoBytes bytes) and objects.
    """
    if raw is None or isinstance(raw, bytes):
        return raw
    if isinstance(raw, str):
        return raw.encode("utf-8")
    if isinstance(raw, dict):
        return json.dumps(raw, sort_keys=True).encode("utf-8")
    try:
        return bytes(b & 0xFF for b in raw)
    except TypeError as exc:
        raise ConfigurationError(
            f"engine_config must be a string, object or list of ints, got {type(raw).__name__}"
        ) from exc


def _filter_kwargs(cls: type, raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    @brief 规范化别名并过滤掉 dataclass 未声明的字段。
           Normalize aliases and drop keys the dataclass does not declare.
    @param cls 目标 dataclass 类型。Target dataclass type.
    @param raw JSON 解析出的原始字典。Raw dict from JSON.
    @return 可安全传入 cls(**kwargs) 的字典。Safe kwargs for cls(**kwargs).
    """
    if not raw:
        return {}
    valid = {f.name for f in fields(cls)}
    out: Dict[str, Any] = {}
    for key, value in raw.items():
        name = _ALIASES.get(key, key)
        if name in valid:
            out[name] = value
        else:
            logger.warning("Ignoring unknown config key %r", key)
    return out


def config_from_dict(data: Dict[str, Any]) -> EmbeddingsConfig:
    """
    @brief 从字典构造 EmbeddingsConfig（支持别名）。
           Build an EmbeddingsConfig from a dict (aliases supported).
    """
    kwargs = _filter_kwargs(EmbeddingsConfig, data)
    if "engine_config" in kwargs:
        kwargs["engine_config"] = _coerce_engine_config(kwargs["engine_config"])
    return EmbeddingsConfig(**kwargs)


def _resolve_config_path(name_or_path: Union[str, Path]) -> Path:
    """
    @brief 将配置名或路径解析为实际 JSON 文件路径。
           Resolve a config name or path into an actual JSON file path.
    @note 传入 'default' 时会在包内 'bertembed/configs/default.json' 下查找。
          'default' resolves to the packaged 'bertembed/configs/default.json'.
    """
    p = Path(name_or_path)
    if p.is_file():
        return p.resolve()

    configs_dir = Path(__file__).resolve().parents[1] / "configs"
    name = str(name_or_path)
    filename = name if name.endswith(".json") else name + ".json"
    candidate = configs_dir / filename
    if candidate.is_file():
        return candidate.resolve()

    raise ResourceNotFoundError(
        name_or_path, f"config JSON not found (also tried {candidate})"
    )


# ============================================================
# 对外主入口 Public API
# ============================================================


def load_config(name_or_path: Union[str, Path]) -> EmbeddingsConfig:
    """
    @brief 从 JSON 路径或包内配置名加载 EmbeddingsConfig。
           Load an EmbeddingsConfig from a JSON path or packaged config name.
    @param name_or_path JSON 文件路径，或 configs 下的配置名（可不带 .json）。
           JSON file path, or config name under 'bertembed/configs'.
    @return EmbeddingsConfig 实例。EmbeddingsConfig instance.
    @example
        >>> cfg = load_config("default")
        >>> cfg = load_config("configs/uncased_last_layer.json")
    """
    path = _resolve_config_path(name_or_path)
    logger.info("Loading embeddings config from: %s", path)

    with path.open("r", encoding="utf-8") as f:
        try:
            raw = json.load(f)
        except json.JSONDecodeError as exc:
            raise ResourceNotFoundError(path, f"malformed config JSON ({exc})") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Top-level JSON must be an object/dict, got: {type(raw)!r}")

    return config_from_dict(raw)
