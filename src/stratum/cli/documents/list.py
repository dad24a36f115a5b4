"""
Stratum documents list command.

SUMMARY: List registered instruction documents in precedence order
"""

from __future__ import annotations

import argparse

from stratum.cli import OutputFormatter, add_standard_flags, add_tier_flag, load_project_from_args
from stratum.core.exceptions import StratumError
from stratum.core.resolution import order_documents

SUMMARY = "List registered instruction documents in precedence order"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_tier_flag(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        service = load_project_from_args(args).service()
        documents = order_documents(service.list_documents(args.tier), service.policy)
    except (StratumError, ValueError) as e:
        formatter.error(e)
        return 1

    if formatter.json_mode:
        formatter.json_output(
            {
                "generation": service.registry.generation,
                "count": len(documents),
                "documents": [d.to_dict() for d in documents],
            }
        )
        return 0

    if not documents:
        formatter.text("No instruction documents found.")
        return 0

    formatter.text(f"{len(documents)} instruction document(s):")
    for doc in documents:
        applies = ", ".join(doc.applies_to) or "*"
        formatter.text(f"  {doc.id:<40} {doc.tier.value:<16} {doc.size_in_tokens:>6}  {applies}")
    return 0
