"""YAML frontmatter parsing for instruction files.

Instruction files may declare metadata in a frontmatter block delimited by
'---' markers at the start of the file:

    ```markdown
    ---
    applyTo: "**/*.c,**/*.h"
    description: Embedded C conventions
    ---

    Prefer fixed-width integer types.
    ```
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict

import yaml


# Matches content between the first pair of '---' markers at the start of a file.
FRONTMATTER_PATTERN = re.compile(
    r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL,
)


@dataclass
class ParsedDocument:
    """Result of parsing a document with YAML frontmatter.

    Attributes:
        frontmatter: Parsed YAML frontmatter as a dictionary
        content: The markdown content after the frontmatter
    """
    frontmatter: Dict[str, Any]
    content: str


def parse_frontmatter(content: str) -> ParsedDocument:
    """Parse YAML frontmatter from markdown content.

    Files without a frontmatter block yield an empty mapping and the full
    content.

    Raises:
        ValueError: If the frontmatter is not valid YAML or not a mapping

    Example:
        >>> doc = parse_frontmatter('---\\napplyTo: "**/*.c"\\n---\\nUse C99.\\n')
        >>> doc.frontmatter['applyTo']
        '**/*.c'
        >>> doc.content
        'Use C99.\\n'
    """
    match = FRONTMATTER_PATTERN.match(content)

    if not match:
        return ParsedDocument(frontmatter={}, content=content)

    raw_yaml = match.group(1)
    remaining_content = content[match.end():]

    try:
        parsed = yaml.safe_load(raw_yaml)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in frontmatter: {e}") from e
    if parsed is None:
        parsed = {}
    if not isinstance(parsed, dict):
        raise ValueError(f"Frontmatter must be a YAML mapping, got {type(parsed).__name__}")

    return ParsedDocument(
        frontmatter=parsed,
        content=remaining_content,
    )


__all__ = [
    "ParsedDocument",
    "parse_frontmatter",
    "FRONTMATTER_PATTERN",
]
