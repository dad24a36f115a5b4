"""Unified CLI output formatting utilities.

Every Stratum command prints through :class:`OutputFormatter` so that
``--json`` output stays machine-readable and text output stays consistent.
"""
from __future__ import annotations

import json
import sys
from typing import Any, Optional


class OutputFormatter:
    """Unified output formatter for CLI commands."""

    def __init__(self, json_mode: bool = False, indent: int = 2):
        """Initialize formatter.

        Args:
            json_mode: If True, output JSON; otherwise output text
            indent: JSON indentation level
        """
        self.json_mode = json_mode
        self.indent = indent

    def error(self, error: Exception, message: Optional[str] = None) -> None:
        """Output an error to stderr.

        In JSON mode, errors that carry a structured payload (``to_json_error``)
        are printed as that payload.
        """
        msg = message or str(error)
        if self.json_mode:
            to_json = getattr(error, "to_json_error", None)
            if callable(to_json):
                output = {"status": "error", **to_json()}
            else:
                output = {"status": "error", "message": msg, "code": error.__class__.__name__}
            print(json.dumps(output, indent=self.indent, default=str), file=sys.stderr)
        else:
            print(f"Error: {msg}", file=sys.stderr)

    def warning(self, message: str) -> None:
        """Print a text-mode notice to stderr (never pollutes stdout)."""
        if not self.json_mode:
            print(f"Warning: {message}", file=sys.stderr)

    def json_output(self, data: Any) -> None:
        print(json.dumps(data, indent=self.indent, default=str))

    def text(self, message: str) -> None:
        print(message)


__all__ = ["OutputFormatter"]
