"""Document registry with atomic snapshot publication.

Readers call :meth:`DocumentRegistry.snapshot` and keep the returned object for
the whole resolution. Writers (``register``/``reload``) build a complete new
snapshot off to the side and publish it with a single attribute assignment,
so a reader never observes a half-updated registry. A failed write publishes
nothing.
"""
from __future__ import annotations

import logging
import threading
from typing import Iterable, List, Optional, Union

from stratum.core.documents.models import InstructionDocument, Tier
from stratum.core.exceptions import DuplicateDocumentIDError
from stratum.core.policy import DEFAULT_POLICY, PrecedencePolicy
from stratum.core.tokens import TiktokenCounter, TokenCounter
from stratum.core.utils.profiling import span

from .snapshot import (
    RegistryHandle,
    RegistrySnapshot,
    build_snapshot,
    document_problems,
    size_document,
)

logger = logging.getLogger(__name__)


class DocumentRegistry:
    """Holds the currently published :class:`RegistrySnapshot`."""

    def __init__(
        self,
        documents: Iterable[InstructionDocument] = (),
        *,
        token_counter: Optional[TokenCounter] = None,
        policy: Optional[PrecedencePolicy] = None,
    ) -> None:
        self.token_counter: TokenCounter = token_counter or TiktokenCounter()
        self.policy = policy or DEFAULT_POLICY
        self._write_lock = threading.Lock()
        docs = list(documents)
        self._snapshot = build_snapshot(
            docs,
            token_counter=self.token_counter,
            policy=self.policy,
            generation=0,
            start_order=0,
        )
        self._next_order = len(docs)

    def snapshot(self) -> RegistrySnapshot:
        """Return the current immutable view (lock-free)."""
        return self._snapshot

    @property
    def generation(self) -> int:
        return self._snapshot.generation

    def register(self, doc: InstructionDocument) -> RegistryHandle:
        """Validate and add a single document, publishing a new snapshot.

        Raises:
            DuplicateDocumentIDError: If ``doc.id`` is already registered
            InvalidPatternSyntaxError: If an ``applies_to`` pattern is malformed
            InvalidDocumentError: If the document violates a registration invariant
        """
        with self._write_lock:
            current = self._snapshot
            if doc.id in current:
                raise DuplicateDocumentIDError(doc.id)
            with span("registry.register", id=doc.id):
                prepared = size_document(
                    doc, token_counter=self.token_counter, registration_order=self._next_order
                )
                problems = document_problems(prepared, self.policy)
                if problems:
                    raise problems[0]
                documents = dict(current.documents)
                documents[prepared.id] = prepared
                published = RegistrySnapshot(documents=documents, generation=current.generation + 1)
            self._snapshot = published
            self._next_order += 1
            logger.debug(
                "Registered %s (%s, %d tokens) at generation %d",
                prepared.id,
                prepared.tier.value,
                prepared.size_in_tokens,
                published.generation,
            )
            return RegistryHandle(
                document_id=prepared.id,
                registration_order=prepared.registration_order,
                generation=published.generation,
            )

    def reload(self, documents: Iterable[InstructionDocument]) -> RegistrySnapshot:
        """Atomically replace every document.

        The new snapshot is fully built and validated before it is published;
        on error the previous snapshot stays in place.
        """
        docs = list(documents)
        with self._write_lock:
            current = self._snapshot
            with span("registry.reload", documents=len(docs)):
                published = build_snapshot(
                    docs,
                    token_counter=self.token_counter,
                    policy=self.policy,
                    generation=current.generation + 1,
                    start_order=self._next_order,
                )
            self._snapshot = published
            self._next_order += len(docs)
        logger.info("Reloaded registry: %d documents (generation %d)", len(published), published.generation)
        return published

    def list_documents(self, tier: Optional[Union[Tier, str]] = None) -> List[InstructionDocument]:
        """Documents in registration order, optionally filtered by tier."""
        return self._snapshot.by_tier(Tier.parse(tier) if tier is not None else None)


__all__ = ["DocumentRegistry"]
