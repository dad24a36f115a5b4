"""Candidate selection and precedence ordering."""
from __future__ import annotations

import logging
from typing import List, Optional, Union

from stratum.core.documents.models import EventType, InstructionDocument, Tier
from stratum.core.exceptions import UnknownExplicitTemplateError
from stratum.core.patterns import matches_any_pattern
from stratum.core.policy import DEFAULT_POLICY, PrecedencePolicy
from stratum.core.registry.snapshot import RegistrySnapshot

logger = logging.getLogger(__name__)


def _is_candidate(
    doc: InstructionDocument,
    path: str,
    event_type: EventType,
    policy: PrecedencePolicy,
) -> bool:
    if doc.tier is Tier.PROMPT_FILE:
        return False
    if not doc.accepts_event(event_type):
        return False
    if policy.is_always_applicable(doc.tier):
        return True
    return doc.always_applies or matches_any_pattern(path, doc.applies_to)


def order_documents(
    documents: List[InstructionDocument],
    policy: PrecedencePolicy = DEFAULT_POLICY,
) -> List[InstructionDocument]:
    """Sort by (tier rank, registration order): highest precedence first."""
    return sorted(documents, key=policy.sort_key)


def candidates(
    snapshot: RegistrySnapshot,
    path: str,
    event_type: Union[EventType, str],
    policy: PrecedencePolicy = DEFAULT_POLICY,
) -> List[InstructionDocument]:
    """Return the ordered candidate set for ``path`` and ``event_type``.

    Always-applicable tiers are included for every path; path-scoped tiers are
    included when any ``applies_to`` pattern matches. Prompt files never
    become candidates through path matching.
    """
    event = EventType.parse(event_type)
    selected = [doc for doc in snapshot if _is_candidate(doc, path, event, policy)]
    ordered = order_documents(selected, policy)
    logger.debug(
        "%d of %d documents are candidates for %s (%s)",
        len(ordered),
        len(snapshot),
        path,
        event.value,
    )
    return ordered


def by_name(snapshot: RegistrySnapshot, name: str) -> InstructionDocument:
    """Look up a prompt file for explicit invocation.

    Raises:
        UnknownExplicitTemplateError: If no prompt file is registered under ``name``
    """
    doc: Optional[InstructionDocument] = snapshot.get(name)
    if doc is None or doc.tier is not Tier.PROMPT_FILE:
        raise UnknownExplicitTemplateError(name)
    return doc


__all__ = ["candidates", "order_documents", "by_name"]
