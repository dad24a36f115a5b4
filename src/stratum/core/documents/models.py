"""
Data models for instruction documents.

This module defines the core types shared by the registry and resolver:
- Tier: precedence class of a document
- EventType: interaction event a resolution is performed for
- InstructionDocument: opaque body text plus applicability metadata
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple, Union


def _lookup_key(value: str) -> str:
    return re.sub(r"[\s_\-]+", "", str(value)).lower()


class Tier(str, Enum):
    """Named precedence class assigned to an instruction document."""

    PERSONAL = "personal"
    REPOSITORY_WIDE = "repository_wide"
    PATH_SPECIFIC = "path_specific"
    AGENT_WORKFLOW = "agent_workflow"
    PROMPT_FILE = "prompt_file"
    ORGANIZATION = "organization"

    @classmethod
    def parse(cls, value: Union[str, "Tier"]) -> "Tier":
        """Parse a tier from its value or a CamelCase / kebab-case spelling.

        ``"RepositoryWide"``, ``"repository-wide"`` and ``"repository_wide"``
        all name the same tier.
        """
        if isinstance(value, cls):
            return value
        key = _lookup_key(value)
        for tier in cls:
            if _lookup_key(tier.value) == key:
                return tier
        valid = ", ".join(t.value for t in cls)
        raise ValueError(f"Unknown tier {value!r}. Must be one of: {valid}")


class EventType(str, Enum):
    """Interaction event a resolution is requested for."""

    COMPLETION = "completion"
    CHAT = "chat"
    AGENT_WORKFLOW = "agent_workflow"
    CODE_REVIEW = "code_review"

    @classmethod
    def parse(cls, value: Union[str, "EventType"]) -> "EventType":
        if isinstance(value, cls):
            return value
        key = _lookup_key(value)
        for event in cls:
            if _lookup_key(event.value) == key:
                return event
        valid = ", ".join(e.value for e in cls)
        raise ValueError(f"Unknown event type {value!r}. Must be one of: {valid}")


@dataclass(frozen=True)
class InstructionDocument:
    """A single instruction document.

    Attributes:
        id: Unique document identifier within a registry snapshot
        tier: Precedence class
        body: Opaque text payload (never interpreted)
        applies_to: Ordered applicability patterns; empty means "always applies"
        events: Event types the document is restricted to; empty means all events
        size_in_tokens: Token size, computed once at registration when not given
        registration_order: Monotonic counter assigned by the registry
        description: Optional human-readable summary
        source: File the document was loaded from, when loaded from disk
    """

    id: str
    tier: Tier
    body: str
    applies_to: Tuple[str, ...] = ()
    events: FrozenSet[EventType] = field(default_factory=frozenset)
    size_in_tokens: Optional[int] = None
    registration_order: int = -1
    description: Optional[str] = None
    source: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValueError("Document id must be a non-empty string")
        object.__setattr__(self, "tier", Tier.parse(self.tier))
        if isinstance(self.applies_to, str):
            applies: Iterable[str] = [self.applies_to]
        else:
            applies = self.applies_to or ()
        object.__setattr__(self, "applies_to", tuple(str(p) for p in applies))
        object.__setattr__(
            self, "events", frozenset(EventType.parse(e) for e in (self.events or ()))
        )

    @property
    def always_applies(self) -> bool:
        """True when the document declares no applicability patterns."""
        return not self.applies_to

    def accepts_event(self, event_type: EventType) -> bool:
        return not self.events or event_type in self.events

    def with_registration(self, *, size_in_tokens: int, registration_order: int) -> "InstructionDocument":
        """Return a copy carrying registry-assigned size and order."""
        return replace(self, size_in_tokens=size_in_tokens, registration_order=registration_order)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tier": self.tier.value,
            "appliesTo": list(self.applies_to),
            "events": sorted(e.value for e in self.events),
            "sizeInTokens": self.size_in_tokens,
            "registrationOrder": self.registration_order,
            "description": self.description,
            "source": self.source,
        }


__all__ = [
    "Tier",
    "EventType",
    "InstructionDocument",
]
