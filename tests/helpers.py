"""
@file helpers.py
@brief 测试共享工具：确定性的假推理引擎与标注构造函数。
       Shared test utilities: a deterministic fake engine and annotation builders.
"""

from __future__ import annotations

import threading
import time
from typing import Iterable, List, Optional, Sequence, Tuple

import torch

from bertembed import Annotation, AnnotatorType

TOY_VOCAB = {
    "[CLS]": 0,
    "[SEP]": 1,
    "[UNK]": 2,
    "he": 3,
    "##llo": 4,
    "world": 5,
}


class FakeEngine:
    """
    @brief hidden[l, b, p, h] = id * 100 + l * 10 + h，便于手算期望值。
           hidden[l, b, p, h] = id * 100 + l * 10 + h, so expected values are easy to derive.
    """

    def __init__(self, hidden_size: int = 4, num_layers: int = 2, delay: float = 0.0) -> None:
        self._hidden_size = hidden_size
        self.num_layers = num_layers
        self.delay = delay
        self.calls = 0
        self.seen: List[torch.Tensor] = []
        self._lock = threading.Lock()

    @property
    def hidden_size(self) -> int:
        return self._hidden_size

    def infer(self, input_ids, token_type_ids, attention_mask, all_layers=True):
        with self._lock:
            self.calls += 1
            call = self.calls
            self.seen.append(input_ids.clone())
        # 先提交的批次睡得更久，制造乱序完成。
        if self.delay:
            time.sleep(self.delay / call)

        layers = torch.arange(self.num_layers + 1, dtype=torch.float32).view(-1, 1, 1, 1)
        hidden = torch.arange(self._hidden_size, dtype=torch.float32).view(1, 1, 1, -1)
        ids = input_ids.to(torch.float32).unsqueeze(0).unsqueeze(-1)
        return ids * 100 + layers * 10 + hidden


class FailingEngine(FakeEngine):
    def __init__(self, fail_on_call: int = 1, **kwargs) -> None:
        super().__init__(**kwargs)
        self.fail_on_call = fail_on_call

    def infer(self, input_ids, token_type_ids, attention_mask, all_layers=True):
        with self._lock:
            upcoming = self.calls + 1
        if upcoming == self.fail_on_call:
            with self._lock:
                self.calls += 1
            raise RuntimeError("CUDA out of memory")
        return super().infer(input_ids, token_type_ids, attention_mask, all_layers)


def sentence_annotations(
    text: str,
    sentence: int = 0,
    offset: int = 0,
    spans: Optional[Sequence[Tuple[int, int]]] = None,
) -> List[Annotation]:
    """
    @brief 为一个句子构造 document + token 标注；默认按空格切分。
           Build document + token annotations for one sentence; splits on spaces by default.
    """
    if spans is None:
        spans = []
        pos = 0
        for word in text.split(" "):
            if word:
                spans.append((pos, pos + len(word)))
            pos += len(word) + 1

    meta = {"sentence": str(sentence)}
    out = [
        Annotation(
            annotator_type=AnnotatorType.DOCUMENT,
            begin=offset,
            end=offset + len(text),
            result=text,
            metadata=dict(meta),
        )
    ]
    for begin, end in spans:
        out.append(
            Annotation(
                annotator_type=AnnotatorType.TOKEN,
                begin=offset + begin,
                end=offset + end,
                result=text[begin:end],
                metadata=dict(meta),
            )
        )
    return out


def document_annotations(sentences: Iterable[str]) -> List[Annotation]:
    """@brief 多个句子拼成一行标注，句间隔一个空格。Several sentences joined by one space."""
    out: List[Annotation] = []
    offset = 0
    for idx, text in enumerate(sentences):
        out.extend(sentence_annotations(text, sentence=idx, offset=offset))
        offset += len(text) + 1
    return out
