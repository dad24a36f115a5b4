"""Common CLI argument registration utilities."""
from __future__ import annotations

import argparse

from stratum.core.documents.models import EventType, Tier


def add_json_flag(parser: argparse.ArgumentParser) -> None:
    """Add --json flag for JSON output mode."""
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output as JSON",
    )


def add_repo_root_flag(parser: argparse.ArgumentParser) -> None:
    """Add --repo-root flag for repository root override."""
    parser.add_argument(
        "--repo-root",
        type=str,
        help="Override repository root path",
    )


def non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be >= 0, got {number}")
    return number


def add_max_tokens_flag(parser: argparse.ArgumentParser) -> None:
    """Add --max-tokens budget override (defaults to ``budget.max_tokens``)."""
    parser.add_argument(
        "--max-tokens",
        type=non_negative_int,
        default=None,
        help="Token budget (default: budget.max_tokens from config)",
    )


def event_type(value: str) -> EventType:
    try:
        return EventType.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def tier_name(value: str) -> Tier:
    try:
        return Tier.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc))


def add_event_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--event",
        type=event_type,
        default=EventType.COMPLETION,
        metavar="EVENT",
        help="Interaction event: " + ", ".join(e.value for e in EventType) + " (default: completion)",
    )


def add_tier_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--tier",
        type=tier_name,
        metavar="TIER",
        help="Only show documents in this tier: " + ", ".join(t.value for t in Tier),
    )


def add_standard_flags(parser: argparse.ArgumentParser) -> None:
    """Add --json and --repo-root."""
    add_json_flag(parser)
    add_repo_root_flag(parser)


__all__ = [
    "add_json_flag",
    "add_repo_root_flag",
    "add_max_tokens_flag",
    "add_event_flag",
    "add_tier_flag",
    "add_standard_flags",
    "non_negative_int",
    "event_type",
    "tier_name",
]
