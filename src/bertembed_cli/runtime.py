"""
@file runtime.py
@brief 统一运行时环境与任务调度（状态机 + 任务注册表）。
       Unified runtime environment and task scheduling (state machine + task registry).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, ClassVar, Dict, List, Optional, Type, TypeVar

from bertembed import (
    BertEmbeddings,
    EmbeddingsConfig,
    WordpieceTokenizer,
    WordpieceVocab,
    get_logger,
)


# ============================================================
# 状态机定义 Runtime State Machine
# ============================================================


class RuntimeState(Enum):
    """
    @brief 运行时生命周期阶段。Runtime lifecycle stages.
    """

    INIT = "init"
    READY = "ready"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


TaskName = str


# ============================================================
# 任务基类与注册表 Task Base Class & Registry
# ============================================================

TTask = TypeVar("TTask", bound="EmbeddingTask")


class EmbeddingTask:
    """
    @brief 任务基类：所有 CLI 任务（embed / tokenize）继承自本类。
           Base class of every CLI task (embed / tokenize).
    @note 任务通过 self.runtime 获取配置、词表与标注器。
          Tasks reach config, vocabulary and annotator through self.runtime.
    """

    task_name: ClassVar[TaskName] = "base"

    allowed_start_states: ClassVar[List[RuntimeState]] = [
        RuntimeState.READY,
        RuntimeState.COMPLETED,
        RuntimeState.FAILED,
    ]

    def __init__(self, runtime: "EmbeddingRuntime", **kwargs: Any) -> None:
        self.runtime = runtime
        self.params = kwargs

    def before_run(self) -> None:
        return

    def after_run(self, result: Any) -> None:
        return

    def run(self) -> Any:  # pragma: no cover - abstract by convention
        raise NotImplementedError("EmbeddingTask.run() must be implemented by subclasses.")


class TaskRegistry:
    """
    @brief 任务名称到任务类的映射。Maps task names to task classes.
    """

    def __init__(self) -> None:
        self._tasks: Dict[TaskName, Type[EmbeddingTask]] = {}

    def register(self, task_cls: Type[TTask], name: Optional[TaskName] = None) -> Type[TTask]:
        """
        @brief 注册任务类；重名时覆盖并告警。Register a task class; overrides with a warning on clash.
        """
        task_name = name or getattr(task_cls, "task_name", None)
        if not task_name:
            raise ValueError("Task class must define a non-empty 'task_name'.")

        if task_name in self._tasks:
            get_logger(__name__).warning("Task '%s' is already registered; overriding.", task_name)

        self._tasks[task_name] = task_cls
        return task_cls

    def get(self, name: TaskName) -> Type[EmbeddingTask]:
        if name not in self._tasks:
            raise KeyError(f"Task '{name}' is not registered.")
        return self._tasks[name]

    def available_tasks(self) -> List[TaskName]:
        return sorted(self._tasks.keys())


TASK_REGISTRY = TaskRegistry()


def register_task(
    name: Optional[TaskName] = None,
) -> Callable[[Type[TTask]], Type[TTask]]:
    """
    @brief 任务注册装饰器。Task registration decorator.
    @example
        @register_task("embed")
        class EmbedTask(EmbeddingTask):
            task_name = "embed"
    """

    def decorator(cls: Type[TTask]) -> Type[TTask]:
        TASK_REGISTRY.register(cls, name=name)
        return cls

    return decorator


# ============================================================
# 运行时环境 EmbeddingRuntime
# ============================================================


@dataclass
class EmbeddingRuntime:
    """
    @brief 运行时环境：封装配置、模型目录与懒加载的标注器。
           Runtime environment holding the config, the model folder and a lazily
           built annotator.
    """

    config: EmbeddingsConfig = field(repr=False)
    model_dir: Path
    logger: "logging.Logger"
    state: RuntimeState = field(default=RuntimeState.INIT)

    _annotator: Optional[BertEmbeddings] = field(default=None, init=False, repr=False)
    _tokenizer: Optional[WordpieceTokenizer] = field(default=None, init=False, repr=False)

    def transition_to(self, new_state: RuntimeState) -> None:
        """
        @brief 切换运行时状态，禁止从 FAILED 直接进入 RUNNING。
               Switch state; FAILED → RUNNING directly is rejected.
        """
        if self.state == RuntimeState.FAILED and new_state == RuntimeState.RUNNING:
            raise RuntimeError("Cannot transition from FAILED to RUNNING directly.")
        self.logger.info("State: %s -> %s", self.state.value, new_state.value)
        self.state = new_state

    def get_annotator(self) -> BertEmbeddings:
        """@brief 懒加载标注器（权重在首次推理时才加载）。Lazily build the annotator."""
        if self._annotator is None:
            self.logger.info("Loading annotator from %s...", self.model_dir)
            self._annotator = BertEmbeddings.from_pretrained(self.model_dir, config=self.config)
        return self._annotator

    def get_vocab(self) -> WordpieceVocab:
        return self.get_annotator().vocab

    def get_tokenizer(self) -> WordpieceTokenizer:
        if self._tokenizer is None:
            self._tokenizer = self.get_annotator().tokenizer
        return self._tokenizer


# ============================================================
# 统一入口 Entry points
# ============================================================


def create_runtime(
    config: EmbeddingsConfig,
    model_dir: Path | str,
    logger: Optional[logging.Logger] = None,
) -> EmbeddingRuntime:
    """
    @brief 构建运行时（不执行任务、不加载模型）。Build a runtime without running tasks or loading the model.
    @return 状态为 READY 的运行时。A runtime in READY state.
    """
    if logger is None:
        logger = get_logger(__name__)

    runtime = EmbeddingRuntime(
        config=config,
        model_dir=Path(model_dir).resolve(),
        logger=logger,
        state=RuntimeState.INIT,
    )
    logger.info(
        "Initialize runtime: model_dir=%s, pooling_layer=%d, batch_size=%d",
        runtime.model_dir,
        config.pooling_layer,
        config.batch_size,
    )
    runtime.transition_to(RuntimeState.READY)
    return runtime


def run_task(task_name: TaskName, runtime: EmbeddingRuntime, **task_kwargs: Any) -> Any:
    """
    @brief 通过注册表执行任务，并负责状态迁移 READY → RUNNING → COMPLETED/FAILED。
           Run a registered task, handling READY → RUNNING → COMPLETED/FAILED.
    @throws KeyError 任务未注册。Unregistered task.
    """
    task_cls = TASK_REGISTRY.get(task_name)
    if runtime.state not in task_cls.allowed_start_states:
        raise RuntimeError(
            f"Task '{task_name}' cannot start from runtime state "
            f"'{runtime.state.value}'. Allowed: "
            f"{[s.value for s in task_cls.allowed_start_states]}",
        )

    runtime.logger.info("Starting task '%s' with kwargs=%s.", task_name, task_kwargs)
    task = task_cls(runtime, **task_kwargs)
    runtime.transition_to(RuntimeState.RUNNING)

    try:
        task.before_run()
        result = task.run()
        task.after_run(result)
    except Exception as exc:
        runtime.transition_to(RuntimeState.FAILED)
        runtime.logger.error("Task '%s' failed: %s", task_name, exc, exc_info=True)
        raise

    runtime.transition_to(RuntimeState.COMPLETED)
    runtime.logger.info("Task '%s' completed successfully.", task_name)
    runtime.transition_to(RuntimeState.READY)
    return result
