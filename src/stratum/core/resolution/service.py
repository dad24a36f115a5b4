"""
Resolution service: the query API exposed to external callers.

A resolution captures the registry snapshot once, at call start, and runs
matching, ordering, budgeting and composition against that snapshot only.
Nothing shared is mutated, so any number of resolutions may run concurrently
with each other and with ``reload``.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Protocol, Sequence, Union

from stratum.core.documents.models import EventType, InstructionDocument, Tier
from stratum.core.exceptions import ResolutionCancelledError, StratumError
from stratum.core.registry import (
    DocumentRegistry,
    RegistryHandle,
    RegistrySnapshot,
    iter_problems,
    size_document,
)
from stratum.core.utils.profiling import span

from .budget import allocate, check_mandatory_budget
from .composer import Composer
from .models import DroppedDocument, Finding, ResolvedContext
from .precedence import by_name, candidates, order_documents

logger = logging.getLogger(__name__)


class CancelToken(Protocol):
    """Anything with ``is_set()``, e.g. :class:`threading.Event`."""

    def is_set(self) -> bool: ...


def _check_cancel(cancel: Optional[CancelToken], stage: str) -> None:
    if cancel is not None and cancel.is_set():
        raise ResolutionCancelledError(
            f"Resolution cancelled before {stage}", context={"stage": stage}
        )


def _finding_from_error(exc: StratumError) -> Finding:
    ctx = dict(exc.context)
    ids: List[str] = []
    if ctx.get("document_id"):
        ids.append(str(ctx["document_id"]))
    for entry in ctx.get("documents") or []:
        ids.append(str(entry.get("id")))
    return Finding(
        kind=exc.__class__.__name__,
        message=str(exc),
        document_ids=tuple(ids),
        context=ctx,
    )


class ResolutionService:
    """Orchestrates pattern matching, precedence, budgeting and composition."""

    def __init__(
        self,
        registry: DocumentRegistry,
        *,
        composer: Optional[Composer] = None,
        default_max_tokens: Optional[int] = None,
    ) -> None:
        self.registry = registry
        self.policy = registry.policy
        self.composer = composer or Composer()
        self.default_max_tokens = default_max_tokens

    def _budget(self, max_tokens: Optional[int]) -> Optional[int]:
        return self.default_max_tokens if max_tokens is None else max_tokens

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def resolve(
        self,
        path: str,
        event_type: Union[EventType, str] = EventType.COMPLETION,
        *,
        max_tokens: Optional[int] = None,
        explicit_name: Optional[str] = None,
        cancel: Optional[CancelToken] = None,
        snapshot: Optional[RegistrySnapshot] = None,
    ) -> ResolvedContext:
        """Resolve the instruction context for ``path`` and ``event_type``.

        Args:
            path: File path relative to the project root
            event_type: Interaction event
            max_tokens: Budget override (defaults to the service default; None there means unlimited)
            explicit_name: Prompt file to add to the path-matched documents
            cancel: Optional cancel token checked between stages
            snapshot: Snapshot to resolve against (defaults to the current one)

        Raises:
            BudgetExceededByMandatoryTierError: If mandatory documents alone exceed the budget
            UnknownExplicitTemplateError: If ``explicit_name`` names no prompt file
            ResolutionCancelledError: If ``cancel`` is set before the resolution finishes
        """
        snap = snapshot if snapshot is not None else self.registry.snapshot()
        budget = self._budget(max_tokens)
        event = EventType.parse(event_type)

        with span("resolve", path=path, event=event.value):
            _check_cancel(cancel, "matching")
            with span("resolve.candidates"):
                ordered = candidates(snap, path, event, self.policy)
            if explicit_name is not None:
                ordered = order_documents(ordered + [by_name(snap, explicit_name)], self.policy)

            _check_cancel(cancel, "budgeting")
            with span("resolve.allocate", candidates=len(ordered)):
                allocation = allocate(ordered, budget, self.policy)

            _check_cancel(cancel, "composition")
            context = self.composer.compose(allocation.selected)

        return context.with_provenance(
            dropped=tuple(DroppedDocument.from_document(d) for d in allocation.dropped),
            generation=snap.generation,
        )

    def resolve_explicit(
        self,
        name: str,
        *,
        max_tokens: Optional[int] = None,
        cancel: Optional[CancelToken] = None,
        snapshot: Optional[RegistrySnapshot] = None,
    ) -> ResolvedContext:
        """Compose a single prompt file on its own.

        Raises:
            UnknownExplicitTemplateError: If no prompt file is registered under ``name``
        """
        snap = snapshot if snapshot is not None else self.registry.snapshot()
        with span("resolve.explicit", prompt=name):
            doc = by_name(snap, name)
            _check_cancel(cancel, "budgeting")
            allocation = allocate([doc], self._budget(max_tokens), self.policy)
            _check_cancel(cancel, "composition")
            context = self.composer.compose(allocation.selected)
        return context.with_provenance(
            dropped=tuple(DroppedDocument.from_document(d) for d in allocation.dropped),
            generation=snap.generation,
        )

    def validate(
        self,
        documents: Optional[Iterable[InstructionDocument]] = None,
        *,
        max_tokens: Optional[int] = None,
    ) -> List[Finding]:
        """Run registration-time checks without resolving or raising.

        Args:
            documents: Candidate document set (defaults to the current snapshot)
            max_tokens: Budget for the mandatory-tier check (defaults to the service default)

        Returns:
            Findings in input order; an empty list means the set is acceptable
        """
        if documents is None:
            sized: Sequence[InstructionDocument] = list(self.registry.snapshot())
        else:
            sized = [
                size_document(doc, token_counter=self.registry.token_counter, registration_order=i)
                for i, doc in enumerate(documents)
            ]

        with span("validate", documents=len(sized)):
            findings = [_finding_from_error(exc) for exc in iter_problems(sized, self.policy)]
            overflow = check_mandatory_budget(sized, self._budget(max_tokens), self.policy)
            if overflow is not None:
                findings.append(_finding_from_error(overflow))
        logger.debug("Validation of %d documents produced %d findings", len(sized), len(findings))
        return findings

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------
    def register(self, doc: InstructionDocument) -> RegistryHandle:
        return self.registry.register(doc)

    def reload(self, documents: Iterable[InstructionDocument]) -> RegistrySnapshot:
        return self.registry.reload(documents)

    def list_documents(self, tier: Optional[Union[Tier, str]] = None) -> List[InstructionDocument]:
        return self.registry.list_documents(tier)


__all__ = ["CancelToken", "ResolutionService"]
