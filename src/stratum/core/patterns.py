"""Applicability pattern matching - single source of truth.

A pattern is a comma-separated list of glob sub-patterns. A path matches the
pattern when it matches any sub-pattern.

Supported syntax per sub-pattern:
- ``**`` as a whole segment: zero or more path segments
- ``*``: any run of characters inside one segment (extensions included)
- ``?``: exactly one character inside one segment
- ``[abc]`` / ``[!abc]`` / ``[a-z]``: character classes
- ``{a,b}``: brace alternatives (commas inside braces do not split sub-patterns)

Matching is case-sensitive and anchored to the full path relative to the
project root.

Example:
    from stratum.core.patterns import matches, validate_pattern

    validate_pattern("**/*.c,**/*.h")       # raises InvalidPatternSyntaxError when malformed
    matches("src/uart.c", "**/*.c,**/*.h")  # True
    matches("test/uart.py", "**/*.c,**/*.h")  # False
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import PurePosixPath
from typing import Iterable, List, Optional, Pattern, Tuple

from stratum.core.exceptions import InvalidPatternSyntaxError


@dataclass(frozen=True)
class CompiledPattern:
    """A validated pattern with its anchored regular expression."""

    source: str
    sub_patterns: Tuple[str, ...]
    regex: Pattern[str]

    def matches(self, path: str) -> bool:
        return self.regex.fullmatch(normalize_path(path)) is not None


def normalize_path(path: str) -> str:
    """Normalize a root-relative path for matching (``./a//b`` -> ``a/b``)."""
    text = str(path).strip()
    if not text:
        return ""
    return str(PurePosixPath(text))


_GLOB_SPECIAL = frozenset("[]*?,{}")


def escape_glob(text: str) -> str:
    """Quote glob metacharacters so ``text`` matches only itself.

    Each special character becomes a one-character class (``[`` -> ``[[]``).
    """
    return "".join(f"[{ch}]" if ch in _GLOB_SPECIAL else ch for ch in text)


def _class_end(pattern: str, start: int) -> int:
    """Index of the ``]`` closing the class opened at ``start``, or -1."""
    j = start + 1
    if j < len(pattern) and pattern[j] == "!":
        j += 1
    # A ']' right after the opening bracket is a literal member.
    if j < len(pattern) and pattern[j] == "]":
        j += 1
    return pattern.find("]", j)


def _split_top_level(text: str, track_braces: bool) -> List[str]:
    parts: List[str] = []
    buf: List[str] = []
    depth = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if ch == "[":
            end = _class_end(text, i)
            if end != -1:
                buf.append(text[i : end + 1])
                i = end + 1
                continue
        elif track_braces and ch == "{":
            depth += 1
        elif track_braces and ch == "}":
            depth -= 1
        elif ch == "," and depth == 0:
            parts.append("".join(buf))
            buf = []
            i += 1
            continue
        buf.append(ch)
        i += 1
    parts.append("".join(buf))
    return parts


def split_sub_patterns(pattern: str) -> List[str]:
    """Split a pattern on top-level commas, keeping commas inside braces/classes."""
    return [part.strip() for part in _split_top_level(pattern, track_braces=True)]


def _brace_positions(pattern: str) -> List[int]:
    positions: List[int] = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "[":
            end = _class_end(pattern, i)
            if end != -1:
                i = end + 1
                continue
        elif ch in "{}":
            positions.append(i)
        i += 1
    return positions


def _expand_braces(pattern: str, source: str) -> List[str]:
    """Expand brace groups like ``*.{c,h}`` into ``['*.c', '*.h']``.

    Multiple groups expand recursively; nested groups are rejected. Braces
    inside character classes are literal.
    """
    positions = _brace_positions(pattern)
    if not positions:
        return [pattern]
    start = positions[0]
    if pattern[start] == "}":
        raise InvalidPatternSyntaxError(source, "unbalanced '}'")
    if len(positions) == 1:
        raise InvalidPatternSyntaxError(source, "unbalanced '{'")
    end = positions[1]
    if pattern[end] == "{":
        raise InvalidPatternSyntaxError(source, "nested braces are not supported")
    inside = pattern[start + 1 : end]

    out: List[str] = []
    for part in _split_top_level(inside, track_braces=False):
        out.extend(_expand_braces(f"{pattern[:start]}{part}{pattern[end + 1:]}", source))
    return out


def _segment_regex(segment: str, source: str) -> str:
    out: List[str] = []
    i = 0
    n = len(segment)
    while i < n:
        ch = segment[i]
        if ch == "*":
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "[":
            j = i + 1
            negate = j < n and segment[j] == "!"
            if negate:
                j += 1
            # A ']' right after the opening bracket is a literal member.
            if j < n and segment[j] == "]":
                j += 1
            while j < n and segment[j] != "]":
                j += 1
            if j >= n:
                raise InvalidPatternSyntaxError(source, "unbalanced '['")
            body = segment[i + 1 + (1 if negate else 0) : j]
            if not body:
                raise InvalidPatternSyntaxError(source, "empty character class")
            escaped = body.replace("\\", "\\\\").replace("[", "\\[").replace("]", "\\]")
            if escaped.startswith("^"):
                escaped = "\\" + escaped
            out.append("[" + ("^/" if negate else "") + escaped + "]")
            i = j
        else:
            out.append(re.escape(ch))
        i += 1
    return "".join(out)


def _sub_pattern_regex(sub_pattern: str, source: str) -> str:
    pat = sub_pattern
    if pat.startswith("./"):
        pat = pat[2:]
    # Leading slash anchors at the project root, which every pattern already is.
    if pat.startswith("/"):
        pat = pat[1:]
    if not pat:
        raise InvalidPatternSyntaxError(source, "empty sub-pattern")

    segments = pat.split("/")
    collapsed: List[str] = []
    for seg in segments:
        if seg == "":
            raise InvalidPatternSyntaxError(source, "empty path segment")
        if seg in (".", ".."):
            raise InvalidPatternSyntaxError(source, f"relative segment '{seg}' is not allowed")
        if "**" in seg and seg != "**":
            raise InvalidPatternSyntaxError(source, "'**' must be a whole path segment")
        if seg == "**" and collapsed and collapsed[-1] == "**":
            continue
        collapsed.append(seg)

    regex = ""
    last = len(collapsed) - 1
    for i, seg in enumerate(collapsed):
        if seg == "**":
            if i == last:
                regex += ".*" if i == 0 else "(?:/.*)?"
            else:
                regex += "(?:[^/]+/)*" if i == 0 else "/(?:[^/]+/)*"
            continue
        if i > 0 and collapsed[i - 1] != "**":
            regex += "/"
        regex += _segment_regex(seg, source)
    return regex


@lru_cache(maxsize=1024)
def compile_pattern(pattern: str) -> CompiledPattern:
    """Validate and compile a pattern.

    Raises:
        InvalidPatternSyntaxError: If the pattern is malformed
    """
    if not isinstance(pattern, str):
        raise InvalidPatternSyntaxError(repr(pattern), "pattern must be a string")
    if "\\" in pattern:
        raise InvalidPatternSyntaxError(pattern, "backslashes are not allowed; use '/'")
    if not pattern.strip():
        raise InvalidPatternSyntaxError(pattern, "empty pattern")

    subs = split_sub_patterns(pattern)
    alternatives: List[str] = []
    for sub in subs:
        if not sub:
            raise InvalidPatternSyntaxError(pattern, "empty sub-pattern")
        for expanded in _expand_braces(sub, pattern):
            alternatives.append(_sub_pattern_regex(expanded, pattern))

    combined = "|".join(f"(?:{alt})" for alt in alternatives)
    return CompiledPattern(source=pattern, sub_patterns=tuple(subs), regex=re.compile(combined))


def validate_pattern(pattern: str, *, document_id: Optional[str] = None) -> None:
    """Fail fast on malformed patterns (registration-time check)."""
    try:
        compile_pattern(pattern)
    except InvalidPatternSyntaxError as exc:
        if document_id is None:
            raise
        raise InvalidPatternSyntaxError(exc.pattern, exc.reason, document_id=document_id) from exc


def matches(path: str, pattern: str) -> bool:
    """Check if ``path`` matches any sub-pattern of ``pattern``."""
    return compile_pattern(pattern).matches(path)


def matches_any_pattern(path: str, patterns: Iterable[str]) -> bool:
    """Check if ``path`` matches at least one of ``patterns``."""
    for pattern in patterns:
        if matches(path, pattern):
            return True
    return False


__all__ = [
    "CompiledPattern",
    "normalize_path",
    "escape_glob",
    "split_sub_patterns",
    "compile_pattern",
    "validate_pattern",
    "matches",
    "matches_any_pattern",
]
