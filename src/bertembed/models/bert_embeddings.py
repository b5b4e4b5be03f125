"""
@file bert_embeddings.py
@brief BERT 词向量标注器：消费 document/token 标注，驱动 分词 → 批处理 → 推理 → 归约，
       输出带维度与模型引用元数据的 word_embeddings 标注。
       BERT word-embeddings annotator: consumes document/token annotations, drives
       tokenize → batch → infer → reduce, and emits word_embeddings annotations
       carrying dimension and model-reference metadata.
"""

from __future__ import annotations

import functools
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from bertembed.data.annotations import (
    Annotation,
    AnnotatorType,
    SentenceTokens,
    pack_word_embeddings,
    unpack_tokens,
)
from bertembed.data.metadata import EmbeddingsMetadataTagger
from bertembed.errors import (
    BertEmbeddingsError,
    ConfigurationError,
    EngineFailure,
    ResourceNotFoundError,
)
from bertembed.models.engine import BertInferenceEngine, InferenceEngine
from bertembed.models.reducer import EmbeddingReducer, TokenEmbedding
from bertembed.repr.batching import BatchBuilder, WordpieceBatch
from bertembed.repr.tokenizer import TokenizedSentence, WordpieceTokenizer
from bertembed.repr.vocab import WordpieceVocab, load_vocab
from bertembed.utils.configs import EmbeddingsConfig
from bertembed.utils.logging import get_logger

logger = get_logger(__name__)

#: 引擎工厂：接收不透明配置字节，返回引擎实例。
#: Engine factory: takes the opaque config bytes, returns an engine.
EngineFactory = Callable[[Optional[bytes]], InferenceEngine]

#: 模型目录中词表的候选位置。Candidate vocabulary locations in a model folder.
VOCAB_CANDIDATES = ("vocab.txt", "assets/vocab.txt")


class BertEmbeddings:
    """
    @brief 预训练 BERT 词向量标注器。Pretrained BERT word-embeddings annotator.

    @note
        - 单次调用的状态机：接收标注 → 抽取句子与 token →（无 token 时提前返回）
          → 分词 → 批处理 → 推理 → 归约 → 打包输出。
          Per-invocation flow: receive annotations → extract sentences and tokens →
          (early exit without tokens) → tokenize → batch → infer → reduce → package.
        - 推理引擎在首次使用时惰性构建且只构建一次，并发调用方共享同一实例。
          The engine is built lazily on first use, exactly once; concurrent callers
          share the same instance.
        - 元数据写入委托给 EmbeddingsMetadataTagger（组合而非继承）。
          Metadata tagging is delegated to EmbeddingsMetadataTagger (composition).
    """

    input_annotator_types = (AnnotatorType.DOCUMENT, AnnotatorType.TOKEN)
    output_annotator_type = AnnotatorType.WORD_EMBEDDINGS

    def __init__(
        self,
        vocab: WordpieceVocab,
        config: Optional[EmbeddingsConfig] = None,
        engine_factory: Optional[EngineFactory] = None,
        tagger: Optional[EmbeddingsMetadataTagger] = None,
    ) -> None:
        """
        @brief 构造标注器；配置与词表在此处即完成校验，推理引擎延后构建。
               Build the annotator. Config and vocabulary are validated here; the
               engine is built later.
        @param vocab 子词词表。Wordpiece vocabulary.
        @param config 不可变配置，None 使用默认值。Immutable config; defaults if None.
        @param engine_factory 引擎工厂。Engine factory.
        @param tagger 元数据协作者，None 时按配置创建。Metadata collaborator; built from config if None.
        """
        self.config = config or EmbeddingsConfig()
        self.vocab = vocab

        self.tokenizer = WordpieceTokenizer(
            vocab,
            case_sensitive=self.config.case_sensitive,
            max_input_chars_per_word=self.config.max_input_chars_per_word,
        )
        self.batch_builder = BatchBuilder(cls_id=vocab.cls_id, sep_id=vocab.sep_id)
        self.reducer = EmbeddingReducer(
            pooling_layer=self.config.pooling_layer,
            dimension=self.config.dimension,
        )
        self.tagger = tagger or EmbeddingsMetadataTagger(
            dimension=self.config.dimension,
            storage_ref=self.config.storage_ref,
        )

        self._engine_factory = engine_factory
        self._engine: Optional[InferenceEngine] = None
        self._engine_lock = threading.Lock()

    # ------------------------------------------------------------
    # 加载 Loading
    # ------------------------------------------------------------

    @classmethod
    def from_pretrained(
        cls,
        folder: Union[str, Path],
        config: Optional[EmbeddingsConfig] = None,
    ) -> "BertEmbeddings":
        """
        @brief 从保存的模型目录加载：需包含 vocab.txt（或 assets/vocab.txt）与 Transformers 模型文件。
               Load from a saved model folder containing vocab.txt (or
               assets/vocab.txt) and Transformers model files.
        @param folder 模型目录。Model folder.
        @param config 可选配置。Optional config.
        @throws ResourceNotFoundError 目录或词表缺失。Folder or vocabulary missing.
        @note 模型权重在首次推理时才加载。Weights load on first inference.
        """
        root = Path(folder)
        if not root.exists():
            raise ResourceNotFoundError(root, "model folder not found")
        if not root.is_dir():
            raise ResourceNotFoundError(root, "model path is not a folder")

        vocab_path = next(
            (root / c for c in VOCAB_CANDIDATES if (root / c).is_file()), None
        )
        if vocab_path is None:
            raise ResourceNotFoundError(root / VOCAB_CANDIDATES[0], "vocabulary file vocab.txt not found")

        vocab = load_vocab(vocab_path)
        factory = functools.partial(_load_engine, root)
        logger.info("BertEmbeddings loaded from %s (vocab size=%d)", root, len(vocab))
        return cls(vocab, config=config, engine_factory=factory)

    # ------------------------------------------------------------
    # 推理引擎：一次性构建 Engine: one-shot construction
    # ------------------------------------------------------------

    @property
    def engine_ready(self) -> bool:
        return self._engine is not None

    def get_engine(self) -> InferenceEngine:
        """
        @brief 获取推理引擎；首次调用时构建，之后所有调用方看到同一实例。
               Get the engine. Built on the first call; every later caller sees
               the same instance.
        @throws ConfigurationError 未提供工厂，或引擎 hidden_size 小于 dimension。
                No factory, or engine hidden_size below dimension.
        """
        engine = self._engine
        if engine is not None:
            return engine

        with self._engine_lock:
            if self._engine is None:
                if self._engine_factory is None:
                    raise ConfigurationError(
                        "BertEmbeddings has no inference engine factory; "
                        "use BertEmbeddings.from_pretrained or pass engine_factory"
                    )
                logger.info("Building inference engine...")
                built = self._engine_factory(self.config.engine_config)
                hidden = getattr(built, "hidden_size", None)
                if hidden and hidden < self.config.dimension:
                    raise ConfigurationError(
                        f"engine hidden size {hidden} is smaller than configured "
                        f"dimension {self.config.dimension}"
                    )
                self._engine = built
                logger.info("Inference engine ready.")
            return self._engine

    # ------------------------------------------------------------
    # 核心流程 Core steps
    # ------------------------------------------------------------

    def tokenize(self, sentences: Sequence[SentenceTokens]) -> List[TokenizedSentence]:
        return self.tokenizer.tokenize(sentences)

    def _embed_batch(self, batch_index: int, batch: WordpieceBatch) -> List[List[TokenEmbedding]]:
        engine = self.get_engine()
        try:
            hidden_states = engine.infer(
                batch.input_ids,
                batch.token_type_ids,
                batch.attention_mask,
                all_layers=True,
            )
        except BertEmbeddingsError:
            raise
        except Exception as exc:
            raise EngineFailure(
                f"inference engine failed on batch {batch_index} "
                f"(sentences {batch.offset}..{batch.offset + len(batch) - 1}): {exc}",
                batch_index=batch_index,
            ) from exc
        return self.reducer.reduce(hidden_states, batch)

    def calculate_embeddings(
        self, tokenized: Sequence[TokenizedSentence]
    ) -> List[List[TokenEmbedding]]:
        """
        @brief 批处理 → 推理 → 归约，结果按输入句子顺序排列。
               Batch → infer → reduce, with results in input sentence order.
        @param tokenized 子词句子。Wordpiece sentences.
        @return 外层对应句子，内层对应 token。Outer = sentences, inner = tokens.
        @note num_workers > 1 时批次在线程池中并行执行，executor.map 保证按提交顺序返回。
              With num_workers > 1 batches run on a thread pool; executor.map
              returns results in submission order.
        """
        batches = self.batch_builder.build(
            tokenized,
            batch_size=self.config.batch_size,
            max_length=self.config.max_sentence_length,
        )
        if not batches:
            return []

        # 在分发前构建引擎，配置错误不会在某个工作线程里才暴露。
        self.get_engine()

        workers = min(self.config.num_workers, len(batches))
        if workers > 1:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="bert-infer") as pool:
                per_batch = list(pool.map(self._embed_batch, range(len(batches)), batches))
        else:
            per_batch = [self._embed_batch(i, b) for i, b in enumerate(batches)]

        results: List[List[TokenEmbedding]] = []
        for sentences in per_batch:
            results.extend(sentences)

        logger.info(
            "Embedded %d sentences in %d batches (workers=%d).",
            len(results),
            len(batches),
            workers,
        )
        return results

    # ------------------------------------------------------------
    # 标注器接口 Annotator contract
    # ------------------------------------------------------------

    def consume(self, annotations: Sequence[Annotation]) -> List[Annotation]:
        """
        @brief 处理一行标注，产出 word_embeddings 标注。
               Process one row of annotations and produce word_embeddings annotations.
        @param annotations 上游 document 与 token 标注。Upstream document and token annotations.
        @return 每个输入 token 一条输出标注；没有 token 时返回空列表且不调用引擎。
                One output annotation per input token; [] without touching the
                engine when there are no tokens.
        """
        sentences = unpack_tokens(annotations)
        if not sentences:
            return []

        tokenized = self.tokenize(sentences)
        embedded = self.calculate_embeddings(tokenized)
        return self.tagger.tag_all(pack_word_embeddings(embedded))

    annotate = consume

    def __call__(self, annotations: Sequence[Annotation]) -> List[Annotation]:
        return self.consume(annotations)

    def column_metadata(self) -> Dict[str, Any]:
        """@brief 输出列的元数据。Metadata of the output column."""
        return self.tagger.column_metadata()


def _load_engine(folder: Path, engine_config: Optional[bytes]) -> BertInferenceEngine:
    return BertInferenceEngine.from_pretrained(folder, engine_config=engine_config)
