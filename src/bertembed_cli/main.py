"""
@file main.py
@brief bertembed 命令行入口。其职责严格限定为：
       1) 解析全局与子命令参数；
       2) 加载 EmbeddingsConfig 并应用命令行覆盖；
       3) 构建 EmbeddingRuntime；
       4) 将控制权交给任务注册表，调度 embed / tokenize 任务。
       Main entry for the bertembed command-line interface, responsible for:
       1) parsing global and sub-command arguments;
       2) loading an EmbeddingsConfig and applying command-line overrides;
       3) constructing an EmbeddingRuntime;
       4) delegating execution to tasks registered in the task registry.

@note main.py 不实现任何具体任务逻辑。main.py contains no task-specific logic.
"""

from __future__ import annotations

import argparse
import json
from typing import Any, List, Optional

from bertembed import EmbeddingsConfig, EmbeddingsConfigBuilder, get_logger, load_config
from bertembed.models.engine import parse_engine_config
from bertembed_cli.runtime import create_runtime, run_task

#  强制导入任务模块，确保 embed/tokenize 已注册到 TASK_REGISTRY
#  Force-load task module so that embed/tokenize are registered.
from bertembed_cli import tasks as _bertembed_cli_tasks  # noqa: F401


def _build_parser() -> argparse.ArgumentParser:
    """
    @brief 构建顶层 argparse 解析器，并注册全局选项与子命令。
           Build the top-level argparse parser with global options and sub-commands.
    """
    parser = argparse.ArgumentParser(
        prog="bertembed",
        description="bertembed: pretrained BERT word embeddings for token annotations",
    )

    # -------------------------------
    # 全局选项 Global options
    # -------------------------------
    parser.add_argument(
        "--config",
        type=str,
        default="default",
        help=(
            "配置名（src/bertembed/configs 下）或 JSON 路径，默认 default。"
            "Config name under src/bertembed/configs or a JSON path, default 'default'."
        ),
    )
    parser.add_argument(
        "--model",
        dest="model_dir",
        type=str,
        required=True,
        help=(
            "模型目录，包含 vocab.txt 与 Transformers 模型文件。"
            "Model folder with vocab.txt and Transformers model files."
        ),
    )
    parser.add_argument(
        "--device",
        type=str,
        default=None,
        help="覆盖推理设备，如 'cpu' 或 'cuda:0'。Override the inference device, e.g. 'cpu' or 'cuda:0'.",
    )
    parser.add_argument(
        "--batch-size",
        dest="batch_size",
        type=int,
        default=None,
        help="覆盖配置中的 batch_size。Override batch_size from the config.",
    )
    parser.add_argument(
        "--num-workers",
        dest="num_workers",
        type=int,
        default=None,
        help="覆盖并行推理线程数。Override the number of inference threads.",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        required=True,
        help="子命令 (embed / tokenize)。Sub-commands.",
    )

    # -------------------------------
    # embed 子命令 Embed sub-command
    # -------------------------------
    p_embed = subparsers.add_parser(
        "embed",
        help="为标注文档计算词向量 (compute word embeddings for annotation documents).",
    )
    p_embed.add_argument("--input", dest="input_path", type=str, required=True, help="输入 JSONL。Input JSONL.")
    p_embed.add_argument("--output", dest="output_path", type=str, required=True, help="输出 JSONL。Output JSONL.")
    p_embed.add_argument(
        "--only-embeddings",
        dest="keep_input",
        action="store_false",
        help="输出中只保留 word_embeddings 标注。Write only word_embeddings annotations.",
    )
    p_embed.set_defaults(task_name="embed")

    # -------------------------------
    # tokenize 子命令 Tokenize sub-command
    # -------------------------------
    p_tok = subparsers.add_parser(
        "tokenize",
        help="只做子词切分 (wordpiece segmentation only).",
    )
    p_tok.add_argument("--input", dest="input_path", type=str, required=True, help="输入 JSONL。Input JSONL.")
    p_tok.add_argument("--output", dest="output_path", type=str, required=True, help="输出 JSONL。Output JSONL.")
    p_tok.set_defaults(task_name="tokenize")

    return parser


def _load_config(args: argparse.Namespace) -> EmbeddingsConfig:
    """
    @brief 加载配置并应用命令行覆盖。Load the config and apply command-line overrides.
    """
    base = load_config(args.config)
    builder = EmbeddingsConfigBuilder(base=base)
    if args.batch_size is not None:
        builder.set_batch_size(args.batch_size)
    if args.num_workers is not None:
        builder.set_num_workers(args.num_workers)
    if args.device is not None:
        # device 合并进透传给引擎的 JSON 设置。
        settings = parse_engine_config(base.engine_config)
        settings["device"] = args.device
        builder.set_engine_config(json.dumps(settings, sort_keys=True).encode("utf-8"))
    return builder.build()


def main(argv: Optional[List[str]] = None) -> None:
    """
    @brief CLI 程序入口：解析参数 → 加载配置 → 构建运行时 → 调度任务。
           Entry point: parse args → load config → build runtime → run the task.
    @param argv 可选的参数列表（测试时使用）。Optional argument list (for tests).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    logger = get_logger(__name__)
    logger.info("Parsed arguments: %s", args)

    cfg = _load_config(args)

    runtime = create_runtime(
        config=cfg,
        model_dir=args.model_dir,
        logger=get_logger("cli-runtime"),
    )

    task_kwargs: dict[str, Any] = {
        "input_path": args.input_path,
        "output_path": args.output_path,
    }
    if args.command == "embed":
        task_kwargs["keep_input"] = args.keep_input

    run_task(
        task_name=args.task_name,
        runtime=runtime,
        **task_kwargs,
    )


if __name__ == "__main__":  # pragma: no cover - 交给控制台脚本使用
    main()
