"""
Result types produced by a resolution.

- ContextEntry: provenance of one document inside the composed text
- DroppedDocument: a candidate the budget could not accommodate
- ResolvedContext: composed text plus ordered provenance
- Finding: one problem reported by ``validate``
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Tuple

from stratum.core.documents.models import InstructionDocument, Tier


@dataclass(frozen=True)
class ContextEntry:
    """Where one document sits in the composed text (UTF-8 byte offsets, end exclusive)."""

    document_id: str
    tier: Tier
    byte_start: int
    byte_end: int
    size_in_tokens: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documentId": self.document_id,
            "tier": self.tier.value,
            "byteStart": self.byte_start,
            "byteEnd": self.byte_end,
            "sizeInTokens": self.size_in_tokens,
        }


@dataclass(frozen=True)
class DroppedDocument:
    document_id: str
    tier: Tier
    size_in_tokens: int

    @classmethod
    def from_document(cls, doc: InstructionDocument) -> "DroppedDocument":
        return cls(document_id=doc.id, tier=doc.tier, size_in_tokens=int(doc.size_in_tokens or 0))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documentId": self.document_id,
            "tier": self.tier.value,
            "sizeInTokens": self.size_in_tokens,
        }


@dataclass(frozen=True)
class ResolvedContext:
    """Output of one resolution. Created per request and never persisted."""

    entries: Tuple[ContextEntry, ...] = ()
    composed_text: str = ""
    total_tokens: int = 0
    dropped: Tuple[DroppedDocument, ...] = ()
    generation: int = 0

    @property
    def document_ids(self) -> List[str]:
        return [e.document_id for e in self.entries]

    @property
    def dropped_ids(self) -> List[str]:
        return [d.document_id for d in self.dropped]

    def segment(self, document_id: str) -> str:
        """Return the composed text slice occupied by ``document_id``."""
        for entry in self.entries:
            if entry.document_id == document_id:
                raw = self.composed_text.encode("utf-8")
                return raw[entry.byte_start : entry.byte_end].decode("utf-8")
        raise KeyError(document_id)

    def with_provenance(
        self, *, dropped: Tuple[DroppedDocument, ...], generation: int
    ) -> "ResolvedContext":
        return replace(self, dropped=tuple(dropped), generation=generation)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entries": [e.to_dict() for e in self.entries],
            "composedText": self.composed_text,
            "totalTokens": self.total_tokens,
            "dropped": [d.to_dict() for d in self.dropped],
            "generation": self.generation,
        }


@dataclass(frozen=True)
class Finding:
    """A problem detected by ``ResolutionService.validate``."""

    kind: str
    message: str
    document_ids: Tuple[str, ...] = ()
    severity: str = "error"
    context: Dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "severity": self.severity,
            "message": self.message,
            "documentIds": list(self.document_ids),
            "context": dict(self.context),
        }


__all__ = [
    "ContextEntry",
    "DroppedDocument",
    "ResolvedContext",
    "Finding",
]
