"""Immutable registry snapshots and the registration-time checks that build them."""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

from stratum.core.documents.models import InstructionDocument, Tier
from stratum.core.exceptions import (
    DuplicateDocumentIDError,
    InvalidDocumentError,
    InvalidPatternSyntaxError,
    StratumError,
)
from stratum.core.patterns import validate_pattern
from stratum.core.policy import DEFAULT_POLICY, PrecedencePolicy
from stratum.core.tokens import TokenCounter


@dataclass(frozen=True)
class RegistrySnapshot:
    """Read-only view of every registered document.

    Documents iterate in registration order. A snapshot is never mutated;
    registries publish a new one instead.
    """

    documents: Mapping[str, InstructionDocument] = field(default_factory=dict)
    generation: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.documents, MappingProxyType):
            ordered = sorted(self.documents.values(), key=lambda d: d.registration_order)
            object.__setattr__(
                self, "documents", MappingProxyType({d.id: d for d in ordered})
            )

    def __len__(self) -> int:
        return len(self.documents)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self.documents

    def __iter__(self) -> Iterator[InstructionDocument]:
        return iter(self.documents.values())

    def get(self, document_id: str) -> Optional[InstructionDocument]:
        return self.documents.get(document_id)

    def ids(self) -> List[str]:
        return list(self.documents.keys())

    def by_tier(self, tier: Optional[Tier] = None) -> List[InstructionDocument]:
        """Documents in registration order, optionally restricted to one tier."""
        if tier is None:
            return list(self.documents.values())
        wanted = Tier.parse(tier)
        return [d for d in self.documents.values() if d.tier is wanted]


@dataclass(frozen=True)
class RegistryHandle:
    """Receipt for a successful registration."""

    document_id: str
    registration_order: int
    generation: int


def size_document(
    doc: InstructionDocument,
    *,
    token_counter: TokenCounter,
    registration_order: int,
) -> InstructionDocument:
    """Assign size (when not declared) and registration order."""
    size = doc.size_in_tokens
    if size is None:
        size = token_counter.count(doc.body)
    return doc.with_registration(size_in_tokens=int(size), registration_order=registration_order)


def document_problems(
    doc: InstructionDocument,
    policy: PrecedencePolicy = DEFAULT_POLICY,
) -> List[StratumError]:
    """Return every invariant violation of a single (sized) document."""
    problems: List[StratumError] = []
    if doc.size_in_tokens is None or doc.size_in_tokens <= 0:
        problems.append(InvalidDocumentError(doc.id, "sizeInTokens must be greater than 0"))
    if doc.tier is Tier.PROMPT_FILE and doc.applies_to:
        problems.append(
            InvalidDocumentError(doc.id, "prompt files are reachable by name only and cannot declare appliesTo")
        )
    if policy.is_mandatory(doc.tier) and doc.events:
        problems.append(
            InvalidDocumentError(doc.id, f"{doc.tier.value} documents are mandatory and cannot restrict events")
        )
    for pattern in doc.applies_to:
        try:
            validate_pattern(pattern, document_id=doc.id)
        except InvalidPatternSyntaxError as exc:
            problems.append(exc)
    return problems


def iter_problems(
    documents: Sequence[InstructionDocument],
    policy: PrecedencePolicy = DEFAULT_POLICY,
    *,
    existing: Iterable[str] = (),
) -> Iterator[StratumError]:
    """Yield registration problems across a document set, in input order.

    Args:
        documents: Sized documents to check
        policy: Precedence policy (decides mandatory tiers)
        existing: Ids already registered (duplicates against them are reported)
    """
    seen = set(existing)
    for doc in documents:
        if doc.id in seen:
            yield DuplicateDocumentIDError(doc.id)
        seen.add(doc.id)
        yield from document_problems(doc, policy)


def build_snapshot(
    documents: Iterable[InstructionDocument],
    *,
    token_counter: TokenCounter,
    policy: PrecedencePolicy = DEFAULT_POLICY,
    generation: int = 0,
    start_order: int = 0,
) -> RegistrySnapshot:
    """Size, validate and freeze a complete document set.

    Raises:
        DuplicateDocumentIDError: If two documents share an id
        InvalidPatternSyntaxError: If any applicability pattern is malformed
        InvalidDocumentError: If a document violates a registration invariant
    """
    prepared = [
        size_document(doc, token_counter=token_counter, registration_order=start_order + offset)
        for offset, doc in enumerate(documents)
    ]
    for problem in iter_problems(prepared, policy):
        raise problem
    index: Dict[str, InstructionDocument] = {doc.id: doc for doc in prepared}
    return RegistrySnapshot(documents=index, generation=generation)


__all__ = [
    "RegistrySnapshot",
    "RegistryHandle",
    "size_document",
    "document_problems",
    "iter_problems",
    "build_snapshot",
]
