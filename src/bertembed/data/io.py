"""
@file io.py
@brief JSON Lines 读写：每行一个文档 {"id": ..., "annotations": [...]}。
       JSON Lines I/O, one document per line: {"id": ..., "annotations": [...]}.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Union

from bertembed.data.annotations import Annotation
from bertembed.errors import ResourceNotFoundError
from bertembed.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class AnnotationDocument:
    """
    @brief 一个文档（一行）及其标注。One document (one row) and its annotations.
    """

    id: Any
    annotations: List[Annotation] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"id": self.id, "annotations": [a.to_dict() for a in self.annotations]}

    @classmethod
    def from_dict(cls, data: dict, default_id: Any = None) -> "AnnotationDocument":
        return cls(
            id=data.get("id", default_id),
            annotations=[Annotation.from_dict(a) for a in data.get("annotations", [])],
        )


def iter_annotation_documents(path: Union[str, Path]) -> Iterator[AnnotationDocument]:
    """
    @brief 逐行惰性读取文档，空行跳过。Lazily read documents line by line, skipping blanks.
    @param path JSONL 文件路径。JSONL file path.
    @throws ResourceNotFoundError 文件不存在或某行不是合法 JSON 对象。
            Missing file, or a line that is not a JSON object.
    """
    p = Path(path)
    if not p.is_file():
        raise ResourceNotFoundError(p, "input file not found")

    with p.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError as exc:
                raise ResourceNotFoundError(p, f"malformed JSON on line {lineno} ({exc})") from exc
            if not isinstance(data, dict):
                raise ResourceNotFoundError(p, f"line {lineno} is not a JSON object")
            yield AnnotationDocument.from_dict(data, default_id=lineno - 1)


def read_annotation_documents(path: Union[str, Path]) -> List[AnnotationDocument]:
    docs = list(iter_annotation_documents(path))
    logger.info("Read %d documents from %s", len(docs), path)
    return docs


def write_annotation_documents(
    path: Union[str, Path], documents: Iterable[AnnotationDocument]
) -> int:
    """
    @brief 写出文档为 JSONL，返回写出的行数。Write documents as JSONL; returns the line count.
    """
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with p.open("w", encoding="utf-8") as f:
        for doc in documents:
            f.write(json.dumps(doc.to_dict(), ensure_ascii=False))
            f.write("\n")
            count += 1
    logger.info("Wrote %d documents to %s", count, p)
    return count
