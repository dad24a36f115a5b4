"""Token counting for document sizing.

Documents are sized once at registration; the counter used is selected from
the ``tokens`` config section:

    tokens:
      counter: tiktoken      # or "chars"
      encoding: cl100k_base
      chars_per_token: 4
"""
from __future__ import annotations

import math
import threading
from typing import Any, Mapping, Optional, Protocol, runtime_checkable

import tiktoken


@runtime_checkable
class TokenCounter(Protocol):
    """Anything that can size a text blob in tokens."""

    def count(self, text: str) -> int: ...


class TiktokenCounter:
    """Token counter backed by a tiktoken encoding.

    The encoding is loaded lazily on first use; loading may download the BPE
    ranks once and is cached by tiktoken afterwards.
    """

    def __init__(self, encoding: str = "cl100k_base") -> None:
        self.encoding_name = encoding
        self._encoding: Optional[tiktoken.Encoding] = None
        self._lock = threading.Lock()

    def _get_encoding(self) -> tiktoken.Encoding:
        if self._encoding is None:
            with self._lock:
                if self._encoding is None:
                    self._encoding = tiktoken.get_encoding(self.encoding_name)
        return self._encoding

    def count(self, text: str) -> int:
        if not text:
            return 0
        # Special-token text inside documents is counted as plain text.
        return len(self._get_encoding().encode(text, disallowed_special=()))

    def __repr__(self) -> str:
        return f"TiktokenCounter(encoding={self.encoding_name!r})"


class CharRatioCounter:
    """Deterministic offline estimate: one token per ``chars_per_token`` characters."""

    def __init__(self, chars_per_token: float = 4) -> None:
        if chars_per_token <= 0:
            raise ValueError("chars_per_token must be positive")
        self.chars_per_token = chars_per_token

    def count(self, text: str) -> int:
        if not text:
            return 0
        return max(1, math.ceil(len(text) / self.chars_per_token))

    def __repr__(self) -> str:
        return f"CharRatioCounter(chars_per_token={self.chars_per_token!r})"


def make_token_counter(config: Mapping[str, Any] | None = None) -> TokenCounter:
    """Build the token counter named by the ``tokens`` config section.

    Args:
        config: Full merged config (only the ``tokens`` section is read)

    Raises:
        ValueError: If ``tokens.counter`` names an unknown counter
    """
    section = (config or {}).get("tokens") or {}
    kind = str(section.get("counter") or "tiktoken").strip().lower()
    if kind == "tiktoken":
        return TiktokenCounter(encoding=str(section.get("encoding") or "cl100k_base"))
    if kind == "chars":
        return CharRatioCounter(chars_per_token=float(section.get("chars_per_token") or 4))
    raise ValueError(f"Unknown token counter: {kind!r}. Must be 'tiktoken' or 'chars'")


__all__ = [
    "TokenCounter",
    "TiktokenCounter",
    "CharRatioCounter",
    "make_token_counter",
]
