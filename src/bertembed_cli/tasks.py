"""
@file tasks.py
@brief CLI 具体任务实现：embed（输出词向量标注）与 tokenize（输出子词切分结果）。
       Concrete CLI tasks: embed (write word-embedding annotations) and tokenize
       (write wordpiece segmentation).
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterator, List

from bertembed import AnnotationDocument, BertEmbeddings, get_logger, write_annotation_documents
from bertembed.data.annotations import unpack_tokens
from bertembed.data.io import iter_annotation_documents

from bertembed_cli.runtime import EmbeddingTask, register_task

logger = get_logger(__name__)


@register_task("embed")
class EmbedTask(EmbeddingTask):
    """
    @brief 为输入 JSONL 中的每个文档计算词向量并写出。
           Compute word embeddings for every document of the input JSONL and write them.
    @param input_path 输入 JSONL。Input JSONL.
    @param output_path 输出 JSONL。Output JSONL.
    @param keep_input 是否在输出中保留输入标注。Whether to keep input annotations in the output.
    """

    task_name = "embed"

    def _documents(self, annotator: BertEmbeddings) -> Iterator[AnnotationDocument]:
        keep_input = bool(self.params.get("keep_input", True))
        for doc in iter_annotation_documents(self.params["input_path"]):
            embeddings = annotator.consume(doc.annotations)
            self._counts["documents"] += 1
            self._counts["embeddings"] += len(embeddings)
            annotations = list(doc.annotations) + embeddings if keep_input else embeddings
            yield AnnotationDocument(id=doc.id, annotations=annotations)

    def run(self) -> Dict[str, Any]:
        # 先加载词表与模型目录，失败时不产生空的输出文件。
        annotator = self.runtime.get_annotator()
        self._counts = {"documents": 0, "embeddings": 0}
        write_annotation_documents(self.params["output_path"], self._documents(annotator))

        summary: Dict[str, Any] = dict(self._counts)
        summary["metadata"] = annotator.column_metadata()
        logger.info(
            "embed: %d documents, %d token embeddings -> %s",
            summary["documents"],
            summary["embeddings"],
            self.params["output_path"],
        )
        return summary


@register_task("tokenize")
class TokenizeTask(EmbeddingTask):
    """
    @brief 只做子词切分，便于检查词表覆盖情况。Wordpiece segmentation only, for vocabulary inspection.
    """

    task_name = "tokenize"

    def run(self) -> Dict[str, Any]:
        tokenizer = self.runtime.get_tokenizer()
        output_path = Path(self.params["output_path"])
        output_path.parent.mkdir(parents=True, exist_ok=True)

        documents = 0
        unknown = 0
        pieces = 0
        unk_id = tokenizer.encoder.unk_id

        with output_path.open("w", encoding="utf-8") as f:
            for doc in iter_annotation_documents(self.params["input_path"]):
                sentences: List[Dict[str, Any]] = []
                for tokenized in tokenizer.tokenize(unpack_tokens(doc.annotations)):
                    sentences.append(
                        {
                            "sentence": tokenized.sentence_index,
                            "wordpieces": tokenized.wordpieces,
                            "ids": tokenized.piece_ids,
                            "spans": [[p.begin, p.end] for p in tokenized.parts],
                            "token_index": [p.token_index for p in tokenized.parts],
                        }
                    )
                    pieces += len(tokenized.parts)
                    unknown += sum(1 for i in tokenized.piece_ids if i == unk_id)
                f.write(json.dumps({"id": doc.id, "sentences": sentences}, ensure_ascii=False))
                f.write("\n")
                documents += 1

        logger.info(
            "tokenize: %d documents, %d wordpieces (%d unknown) -> %s",
            documents,
            pieces,
            unknown,
            output_path,
        )
        return {"documents": documents, "wordpieces": pieces, "unknown": unknown}
