"""
Stratum context resolve command.

SUMMARY: Resolve the instruction context for a file path
"""

from __future__ import annotations

import argparse

from stratum.cli import (
    OutputFormatter,
    add_event_flag,
    add_max_tokens_flag,
    add_standard_flags,
    load_project_from_args,
)
from stratum.core.exceptions import StratumError

SUMMARY = "Resolve the instruction context for a file path"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    parser.add_argument("path", help="File path relative to the repository root")
    add_event_flag(parser)
    add_max_tokens_flag(parser)
    parser.add_argument(
        "--prompt",
        dest="prompt",
        help="Also include the named prompt file",
    )
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    """Resolve and print the composed context."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        service = load_project_from_args(args).service()
        context = service.resolve(
            args.path,
            args.event,
            max_tokens=args.max_tokens,
            explicit_name=args.prompt,
        )
    except (StratumError, ValueError) as e:
        formatter.error(e)
        return 1

    if formatter.json_mode:
        formatter.json_output({"path": args.path, "event": args.event.value, **context.to_dict()})
        return 0

    formatter.text(context.composed_text)
    if context.dropped:
        dropped = ", ".join(context.dropped_ids)
        formatter.warning(f"Dropped for budget: {dropped}")
    return 0
