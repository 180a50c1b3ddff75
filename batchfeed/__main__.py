"""CLI entry point for running path selectors.

Usage:
    python -m batchfeed select ./configs/events.yaml
    python -m batchfeed select ./configs/events.yaml --checkpoint 2
    python -m batchfeed select ./configs/events.yaml --commit --retries 3
    python -m batchfeed show-checkpoint ./configs/events.yaml
    python -m batchfeed reset-checkpoint ./configs/events.yaml
    python -m batchfeed --list
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from batchfeed.lib.config_loader import SelectorConfig, load_env_file, load_selector_config
from batchfeed.lib.errors import BatchfeedError, StorageIOError
from batchfeed.lib.logging import setup_logging
from batchfeed.lib.resilience import RetryConfig, retry_operation
from batchfeed.lib.selector import BatchSelection, get_path_selector, list_selectors
from batchfeed.lib.watermark import delete_watermark, get_watermark, save_watermark

logger = logging.getLogger(__name__)


def select_command(args: argparse.Namespace, config: SelectorConfig) -> int:
    """Compute the next selection and optionally persist its checkpoint."""
    checkpoint = args.checkpoint
    if checkpoint is None and not args.from_start:
        checkpoint = get_watermark(config.system, config.entity)

    source_limit = args.source_limit if args.source_limit is not None else config.source_limit
    selector = get_path_selector(config)

    if args.retries > 1:
        retry_config = RetryConfig(
            max_attempts=args.retries,
            retry_exceptions=(StorageIOError,),
        )
        selection: BatchSelection = retry_operation(
            lambda: selector.select_next_batch(checkpoint, source_limit),
            retry_config,
            "batch selection",
        )
    else:
        selection = selector.select_next_batch(checkpoint, source_limit)

    if args.json:
        print(json.dumps(selection.to_dict(), indent=2))
    elif selection.has_data:
        for path in selection.paths:
            print(path)
    elif checkpoint is None:
        print(f"No data found under {config.root_input_path}", file=sys.stderr)
    else:
        print(f"No new data after checkpoint {checkpoint}", file=sys.stderr)

    if args.commit and selection.has_data:
        save_watermark(config.system, config.entity, selection.checkpoint)

    return 0


def show_checkpoint_command(args: argparse.Namespace, config: SelectorConfig) -> int:
    value = get_watermark(config.system, config.entity)
    if value is None:
        print(f"No checkpoint stored for {config.system}.{config.entity}")
    else:
        print(value)
    return 0


def reset_checkpoint_command(args: argparse.Namespace, config: SelectorConfig) -> int:
    if delete_watermark(config.system, config.entity):
        print(f"Checkpoint for {config.system}.{config.entity} deleted")
    else:
        print(f"No checkpoint stored for {config.system}.{config.entity}")
    return 0


COMMANDS = {
    "select": select_command,
    "show-checkpoint": show_checkpoint_command,
    "reset-checkpoint": reset_checkpoint_command,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="batchfeed",
        description="Select newly-arrived files for ingestion",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Print the files of the next batch after the stored checkpoint
    python -m batchfeed select ./configs/events.yaml

    # Same, but starting after an explicit checkpoint
    python -m batchfeed select ./configs/events.yaml --checkpoint 2

    # Store the new checkpoint once the selection is printed
    python -m batchfeed select ./configs/events.yaml --commit

    # Machine-readable output
    python -m batchfeed select ./configs/events.yaml --json
        """,
    )
    parser.add_argument(
        "--list",
        "-l",
        action="store_true",
        dest="list_selectors",
        help="List available selector types",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--json-log",
        action="store_true",
        help="Output logs in JSON format (for log aggregation systems)",
    )
    parser.add_argument(
        "--log-file",
        help="Write logs to a file in addition to the console",
    )
    parser.add_argument(
        "--env-file",
        help="Load environment variables from this .env file first",
    )

    subparsers = parser.add_subparsers(dest="command")

    select = subparsers.add_parser("select", help="Select the next batch of files")
    select.add_argument("config", help="Path to the selector YAML configuration")
    select.add_argument(
        "--checkpoint",
        help="Previous checkpoint (default: the stored checkpoint)",
    )
    select.add_argument(
        "--from-start",
        action="store_true",
        help="Ignore the stored checkpoint and select from the beginning",
    )
    select.add_argument(
        "--source-limit",
        type=int,
        help="Source limit passed to the selector (default: from config)",
    )
    select.add_argument(
        "--commit",
        action="store_true",
        help="Store the new checkpoint when files were selected",
    )
    select.add_argument(
        "--json",
        action="store_true",
        help="Print the selection as JSON",
    )
    select.add_argument(
        "--retries",
        type=int,
        default=1,
        help="Attempts on storage errors (default: 1, no retry)",
    )

    for name, help_text in (
        ("show-checkpoint", "Print the stored checkpoint"),
        ("reset-checkpoint", "Delete the stored checkpoint"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("config", help="Path to the selector YAML configuration")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.list_selectors:
        for name in list_selectors():
            print(name)
        return 0

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(verbose=args.verbose, json_format=args.json_log, log_file=args.log_file)

    try:
        if args.env_file:
            load_env_file(args.env_file)
        config = load_selector_config(args.config)
        return COMMANDS[args.command](args, config)
    except BatchfeedError as e:
        logger.error("%s failed: %s", args.command, e, extra={"error": e.to_dict()})
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
