"""Deterministic composition of selected documents into one context.

Each document contributes one segment: a rendered header line identifying its
id and tier, a newline, then its body verbatim. Segments are joined by a fixed
separator. Composition is a pure function of its input, so identical inputs
give byte-identical text (suitable for golden-file tests).
"""
from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

from jinja2 import Environment, StrictUndefined, TemplateError

from stratum.core.documents.models import InstructionDocument
from stratum.core.exceptions import ConfigError
from stratum.core.utils.profiling import span

from .models import ContextEntry, ResolvedContext

DEFAULT_HEADER_TEMPLATE = "<!-- {{ tier }}: {{ id }} -->"
DEFAULT_SEPARATOR = "\n\n"


class Composer:
    """Render selected documents into a :class:`ResolvedContext`."""

    def __init__(
        self,
        header_template: str = DEFAULT_HEADER_TEMPLATE,
        separator: str = DEFAULT_SEPARATOR,
    ) -> None:
        env = Environment(undefined=StrictUndefined, autoescape=False, keep_trailing_newline=False)
        try:
            self._template = env.from_string(header_template)
        except TemplateError as exc:
            raise ConfigError(f"Invalid composition.header_template: {exc}") from exc
        self.header_template = header_template
        self.separator = separator

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]] = None) -> "Composer":
        section = (config or {}).get("composition") or {}
        return cls(
            header_template=str(section.get("header_template") or DEFAULT_HEADER_TEMPLATE),
            separator=str(section.get("separator", DEFAULT_SEPARATOR)),
        )

    def render_header(self, doc: InstructionDocument) -> str:
        try:
            header = self._template.render(
                id=doc.id,
                tier=doc.tier.value,
                description=doc.description or "",
                size_in_tokens=doc.size_in_tokens,
                source=doc.source or "",
            )
        except TemplateError as exc:
            raise ConfigError(f"Cannot render header for {doc.id}: {exc}") from exc
        # A header is exactly one line.
        return header.replace("\r", " ").replace("\n", " ")

    def compose(self, selected: Sequence[InstructionDocument]) -> ResolvedContext:
        """Concatenate ``selected`` in the given order and record byte ranges."""
        with span("compose", documents=len(selected)):
            parts: List[bytes] = []
            entries: List[ContextEntry] = []
            sep = self.separator.encode("utf-8")
            offset = 0
            for index, doc in enumerate(selected):
                if index:
                    parts.append(sep)
                    offset += len(sep)
                segment = f"{self.render_header(doc)}\n{doc.body}".encode("utf-8")
                parts.append(segment)
                entries.append(
                    ContextEntry(
                        document_id=doc.id,
                        tier=doc.tier,
                        byte_start=offset,
                        byte_end=offset + len(segment),
                        size_in_tokens=int(doc.size_in_tokens or 0),
                    )
                )
                offset += len(segment)
            return ResolvedContext(
                entries=tuple(entries),
                composed_text=b"".join(parts).decode("utf-8"),
                total_tokens=sum(e.size_in_tokens for e in entries),
            )


def compose(selected: Sequence[InstructionDocument], composer: Optional[Composer] = None) -> ResolvedContext:
    """Compose with ``composer`` (default header and separator when omitted)."""
    return (composer or Composer()).compose(selected)


__all__ = [
    "DEFAULT_HEADER_TEMPLATE",
    "DEFAULT_SEPARATOR",
    "Composer",
    "compose",
]
