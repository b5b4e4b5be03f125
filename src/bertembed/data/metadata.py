"""
@file metadata.py
@brief 词向量元数据标记：为输出标注写入 dimension / storage_ref，并提供下游一致性检查。
       Embeddings metadata tagging: writes dimension / storage_ref onto output
       annotations and offers a downstream consistency check.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional, Sequence

from bertembed.data.annotations import Annotation, AnnotatorType
from bertembed.errors import ConfigurationError


@dataclass(frozen=True)
class EmbeddingsMetadataTagger:
    """
    @brief 独立的元数据协作者，编排器通过组合而非继承使用它。
           Standalone metadata collaborator used by the orchestrator through
           composition rather than inheritance.
    @param dimension 向量维度。Vector dimension.
    @param storage_ref 模型引用字符串。Model reference string.
    """

    dimension: int
    storage_ref: str

    def tag(self, annotation: Annotation) -> Annotation:
        metadata = dict(annotation.metadata)
        metadata["dimension"] = str(self.dimension)
        metadata["storage_ref"] = self.storage_ref
        return replace(annotation, metadata=metadata)

    def tag_all(self, annotations: Sequence[Annotation]) -> List[Annotation]:
        return [self.tag(a) for a in annotations]

    def column_metadata(self) -> Dict[str, Any]:
        """
        @brief 输出列级元数据（标注类型、维度、引用）。
               Column-level metadata: annotator type, dimension and reference.
        """
        return {
            "annotatorType": AnnotatorType.WORD_EMBEDDINGS,
            "dimension": self.dimension,
            "ref": self.storage_ref,
        }

    @staticmethod
    def check_consistency(metadata: Mapping[str, Any], expected_ref: str) -> None:
        """
        @brief 校验上游词向量与下游期望的模型引用一致。
               Check that upstream embeddings come from the model a consumer expects.
        @param metadata 标注或列级元数据。Annotation or column metadata.
        @param expected_ref 期望的 storage_ref。Expected storage_ref.
        @throws ConfigurationError 引用缺失或不一致。Missing or mismatched reference.
        """
        found: Optional[Any] = metadata.get("storage_ref", metadata.get("ref"))
        if found is None:
            raise ConfigurationError(
                f"embeddings carry no storage ref; expected {expected_ref!r}"
            )
        if str(found) != expected_ref:
            raise ConfigurationError(
                f"embeddings storage ref {found!r} does not match expected {expected_ref!r}"
            )
