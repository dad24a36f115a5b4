"""
Stratum context explicit command.

SUMMARY: Compose a single prompt file by name
"""

from __future__ import annotations

import argparse

from stratum.cli import OutputFormatter, add_max_tokens_flag, add_standard_flags, load_project_from_args
from stratum.core.exceptions import StratumError

SUMMARY = "Compose a single prompt file by name"


def register_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("name", help="Prompt file name (file name without .prompt.md)")
    add_max_tokens_flag(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        service = load_project_from_args(args).service()
        context = service.resolve_explicit(args.name, max_tokens=args.max_tokens)
    except (StratumError, ValueError) as e:
        formatter.error(e)
        return 1

    if formatter.json_mode:
        formatter.json_output({"name": args.name, **context.to_dict()})
    else:
        formatter.text(context.composed_text)
    return 0
