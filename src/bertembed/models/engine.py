"""
@file engine.py
@brief 推理引擎：核心模块只依赖窄接口 infer(...)，具体实现基于 HuggingFace Transformers。
       Inference engine. The core depends only on the narrow infer(...) contract;
       the concrete implementation is built on HuggingFace Transformers.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Protocol, Union

import torch
from torch import Tensor, nn
from transformers import AutoConfig, AutoModel

from bertembed.errors import ConfigurationError, ResourceNotFoundError
from bertembed.utils.logging import get_logger

logger = get_logger(__name__)

_DTYPES = {
    "float32": torch.float32,
    "float16": torch.float16,
    "bfloat16": torch.bfloat16,
}


class InferenceEngine(Protocol):
    """
    @brief 推理引擎接口：给定 (B, L) 张量，返回 (层数+1, B, L, H) 的逐层激活。
           Engine contract: given (B, L) tensors, return per-layer activations of
           shape (num_layers + 1, B, L, H). Layer 0 is the embedding layer.
    """

    @property
    def hidden_size(self) -> int: ...

    def infer(
        self,
        input_ids: Tensor,
        token_type_ids: Tensor,
        attention_mask: Tensor,
        all_layers: bool = True,
    ) -> Tensor: ...


def parse_engine_config(raw: Optional[bytes]) -> Dict[str, Any]:
    """
    @brief 解析透传给引擎的不透明字节（UTF-8 JSON）。
           Parse the opaque engine bytes (UTF-8 JSON).
    @param raw 字节或 None。Bytes or None.
    @return 配置字典，支持 device / dtype / num_threads。
            Settings dict; device / dtype / num_threads are recognized.
    @throws ConfigurationError 无法解析或取值非法。Unparseable or invalid values.
    """
    if not raw:
        return {}
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"engine_config is not valid UTF-8 JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"engine_config must encode a JSON object, got {type(data).__name__}")
    dtype = data.get("dtype")
    if dtype is not None and dtype not in _DTYPES:
        raise ConfigurationError(
            f"engine_config dtype must be one of {sorted(_DTYPES)}, got {dtype!r}"
        )
    threads = data.get("num_threads")
    if threads is not None and (not isinstance(threads, int) or threads < 1):
        raise ConfigurationError(f"engine_config num_threads must be a positive int, got {threads!r}")
    return data


class BertInferenceEngine(nn.Module):
    """
    @brief 基于 Transformers 的 BERT 推理引擎，输出包含嵌入层在内的全部隐藏层。
           BERT inference engine on Transformers, returning every hidden layer
           including the embedding layer.

    @note
        - 该模块不负责分词与构造 input_ids，假定上游 BatchBuilder 已完成；
          Tokenization and id construction are done upstream by BatchBuilder.
        - 始终在 eval 模式与 no_grad 下运行，没有训练路径。
          Always runs in eval mode under no_grad; there is no training path.
    """

    def __init__(self, model: nn.Module, engine_config: Optional[bytes] = None) -> None:
        """
        @brief 包装一个已构建的 Transformers 模型。Wrap an already built Transformers model.
        @param model 例如 BertModel / AutoModel 实例。E.g. a BertModel / AutoModel instance.
        @param engine_config 不透明配置字节。Opaque engine settings.
        """
        super().__init__()
        settings = parse_engine_config(engine_config)

        if "num_threads" in settings:
            torch.set_num_threads(settings["num_threads"])

        self.device = torch.device(settings.get("device", "cpu"))
        self.dtype = _DTYPES[settings.get("dtype", "float32")]

        self.bert = model.to(device=self.device, dtype=self.dtype)
        self.bert.eval()

        config = getattr(model, "config", None)
        self._hidden_size = int(getattr(config, "hidden_size", 0))
        self._num_layers = int(getattr(config, "num_hidden_layers", 0))

        logger.info(
            "BertInferenceEngine ready: layers=%d, hidden_size=%d, device=%s, dtype=%s",
            self._num_layers,
            self._hidden_size,
            self.device,
            self.dtype,
        )

    @classmethod
    def from_pretrained(
        cls, path: Union[str, Path], engine_config: Optional[bytes] = None
    ) -> "BertInferenceEngine":
        """
        @brief 从本地模型目录加载。Load from a local model folder.
        @param path 含 config.json 与权重的目录。Folder with config.json and weights.
        @param engine_config 不透明配置字节。Opaque engine settings.
        @throws ResourceNotFoundError 目录缺失或无法加载。Missing folder or load failure.
        """
        p = Path(path)
        if not p.is_dir():
            raise ResourceNotFoundError(p, "model folder not found")
        try:
            hf_config = AutoConfig.from_pretrained(str(p))
            model = AutoModel.from_pretrained(str(p), config=hf_config)
        except (OSError, ValueError) as exc:
            raise ResourceNotFoundError(p, f"cannot load model bundle ({exc})") from exc
        return cls(model, engine_config=engine_config)

    @property
    def hidden_size(self) -> int:
        return self._hidden_size

    @property
    def num_layers(self) -> int:
        """@brief Transformer 层数（不含嵌入层）。Transformer layers, excluding embeddings."""
        return self._num_layers

    @torch.no_grad()
    def infer(
        self,
        input_ids: Tensor,
        token_type_ids: Tensor,
        attention_mask: Tensor,
        all_layers: bool = True,
    ) -> Tensor:
        """
        @brief 运行一次前向计算。Run one forward pass.
        @param input_ids (B, L) 子词 ID。(B, L) wordpiece ids.
        @param token_type_ids (B, L) 段 ID。(B, L) segment ids.
        @param attention_mask (B, L) 注意力掩码。(B, L) attention mask.
        @param all_layers 是否返回全部中间层。Whether to return every intermediate layer.
        @return CPU 上 float32 张量 (层数+1, B, L, H)，或 all_layers=False 时 (1, B, L, H)。
                float32 CPU tensor (num_layers + 1, B, L, H), or (1, B, L, H) when
                all_layers is False.
        """
        if input_ids.dim() != 2:
            raise ValueError(
                f"input_ids must be 2D (batch, seq_len), got shape {tuple(input_ids.shape)}"
            )

        outputs = self.bert(
            input_ids=input_ids.to(self.device),
            attention_mask=attention_mask.to(self.device),
            token_type_ids=token_type_ids.to(self.device),
            output_hidden_states=True,
            return_dict=True,
        )

        if all_layers:
            hidden = torch.stack(tuple(outputs.hidden_states), dim=0)
        else:
            hidden = outputs.last_hidden_state.unsqueeze(0)
        return hidden.to(device="cpu", dtype=torch.float32)

    def forward(
        self,
        input_ids: Tensor,
        token_type_ids: Tensor,
        attention_mask: Tensor,
    ) -> Tensor:
        return self.infer(input_ids, token_type_ids, attention_mask)
