"""
Auto-discovery CLI dispatcher for Stratum.

Scans subfolders for commands and automatically registers them.
Adding new commands = just add a .py file to the appropriate subfolder
exposing ``SUMMARY``, ``register_args(parser)`` and ``main(args) -> int``.
"""

from __future__ import annotations

import argparse
import importlib
import sys
from contextlib import nullcontext
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from stratum.core.utils.profiling import Profiler, enable_profiler, span


@lru_cache(maxsize=1)
def discover_domains() -> Dict[str, Path]:
    """
    Discover all CLI domain subfolders (context, documents).

    Returns:
        Dict mapping domain name to directory path
    """
    cli_dir = Path(__file__).parent
    domains = {}
    for item in cli_dir.iterdir():
        if item.is_dir() and not item.name.startswith("_"):
            # Must have at least one non-init .py file
            has_commands = any(
                f.suffix == ".py" and not f.name.startswith("_")
                for f in item.iterdir()
            )
            if has_commands:
                domains[item.name] = item
    return domains


@lru_cache(maxsize=32)
def discover_commands(domain: str) -> Dict[str, Dict[str, Any]]:
    """
    Discover all commands in a domain subfolder.

    Args:
        domain: Name of the domain (e.g., "context", "documents")

    Returns:
        Dict mapping command name to command info dict
    """
    domain_dir = Path(__file__).parent / domain
    commands: Dict[str, Dict[str, Any]] = {}

    for item in domain_dir.glob("*.py"):
        if item.name.startswith("_"):
            continue

        cmd_name = item.stem
        try:
            with span("cli.discover.import", module=f"stratum.cli.{domain}.{cmd_name}"):
                module = importlib.import_module(f"stratum.cli.{domain}.{cmd_name}")
        except ImportError as e:
            # Skip modules with import errors (will be caught during actual use)
            print(f"Warning: Could not import {domain}.{cmd_name}: {e}", file=sys.stderr)
            continue
        commands[cmd_name] = {
            "module": module,
            "summary": getattr(module, "SUMMARY", f"{domain} {cmd_name}"),
            "register_args": getattr(module, "register_args", None),
            "main": getattr(module, "main", None),
        }

    return commands


def _get_version() -> str:
    from stratum import __version__

    return __version__


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argument parser with auto-discovered domains and commands.

    Returns:
        Configured ArgumentParser
    """
    parser = argparse.ArgumentParser(
        prog="stratum",
        description="Stratum - layered instruction context resolution for AI coding assistants",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )
    parser.add_argument(
        "--profile",
        action="store_true",
        help="Emit profiling information for config loading, discovery and resolution (sent to stderr).",
    )

    subparsers = parser.add_subparsers(
        dest="domain",
        title="domains",
        description="Available command domains",
        metavar="<domain>",
    )

    for domain_name in sorted(discover_domains().keys()):
        domain_commands = discover_commands(domain_name)
        if not domain_commands:
            continue

        domain_parser = subparsers.add_parser(
            domain_name,
            help=f"{domain_name.title()} commands",
        )
        cmd_subparsers = domain_parser.add_subparsers(
            dest="command",
            title="commands",
            description=f"Available {domain_name} commands",
            metavar="<command>",
        )

        for cmd_name, cmd_info in sorted(domain_commands.items()):
            primary_name = cmd_name.replace("_", "-")
            aliases = [cmd_name] if primary_name != cmd_name else []
            cmd_parser = cmd_subparsers.add_parser(
                primary_name,
                aliases=aliases,
                help=cmd_info["summary"],
            )

            # Let module register its own arguments
            if cmd_info["register_args"]:
                cmd_info["register_args"](cmd_parser)

            # Set the main function as default handler
            if cmd_info["main"]:
                cmd_parser.set_defaults(_func=cmd_info["main"])

    return parser


def _strip_profile_flag(argv: List[str]) -> Tuple[List[str], bool]:
    """Strip the global ``--profile`` flag only when it appears before the domain."""
    domain_index: Optional[int] = None
    for i, a in enumerate(argv):
        if not a.startswith("-"):
            domain_index = i
            break

    enabled = False
    out: List[str] = []
    for i, a in enumerate(argv):
        if a == "--profile" and (domain_index is None or i < domain_index):
            enabled = True
            continue
        out.append(a)
    return out, enabled


def _print_profile(profiler: Profiler) -> None:
    totals = profiler.summary_ms()
    top = sorted(totals.items(), key=lambda kv: kv[1], reverse=True)[:50]
    print("\nProfiling (top spans):", file=sys.stderr)
    for name, ms in top:
        print(f"- {name}: {ms:.1f}ms", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the Stratum CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    if argv is None:
        argv = sys.argv[1:]

    argv, profile_enabled = _strip_profile_flag(list(argv))

    profiler = Profiler() if profile_enabled else None
    ctx = enable_profiler(profiler) if profiler else nullcontext()

    result = 1
    with ctx:
        with span("cli.total"):
            with span("cli.parser.build"):
                parser = build_parser()
            args = parser.parse_args(argv)

            func: Optional[Callable[[argparse.Namespace], int]] = getattr(args, "_func", None)
            if not args.domain:
                parser.print_help()
                result = 0
            elif func is None:
                # Domain without command: show the domain's help
                domain_parser = parser._subparsers._group_actions[0].choices.get(args.domain)
                if domain_parser:
                    domain_parser.print_help()
                result = 0
            else:
                command_name = f"{args.domain} {args.command}"
                try:
                    with span("cli.command.exec", command=command_name):
                        result = func(args)
                except KeyboardInterrupt:
                    print("\nInterrupted.", file=sys.stderr)
                    result = 130

    if profiler is not None:
        _print_profile(profiler)

    return result


if __name__ == "__main__":
    sys.exit(main())
