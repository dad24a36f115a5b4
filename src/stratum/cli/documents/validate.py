"""
Stratum documents validate command.

SUMMARY: Check instruction documents for registration and budget problems
"""

from __future__ import annotations

import argparse

from stratum.cli import OutputFormatter, add_max_tokens_flag, add_standard_flags, load_project_from_args
from stratum.core.exceptions import StratumError

SUMMARY = "Check instruction documents for registration and budget problems"


def register_args(parser: argparse.ArgumentParser) -> None:
    add_max_tokens_flag(parser)
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    """Validate every discovered document; exit 1 when any error finding exists."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        project = load_project_from_args(args)
        # Validate against an empty registry so invalid documents are reported, not raised.
        findings = project.service(documents=[]).validate(project.documents, max_tokens=args.max_tokens)
    except (StratumError, ValueError) as e:
        formatter.error(e)
        return 1

    errors = [f for f in findings if f.severity == "error"]
    ok = not errors

    if formatter.json_mode:
        formatter.json_output(
            {
                "ok": ok,
                "documents": len(project.documents),
                "findings": [f.to_dict() for f in findings],
            }
        )
    elif ok:
        formatter.text(f"✓ {len(project.documents)} instruction document(s) valid")
    else:
        formatter.text(f"{len(errors)} problem(s) found:")
        for finding in findings:
            formatter.text(f"  [{finding.severity}] {finding.kind}: {finding.message}")

    return 0 if ok else 1
