"""Token budget allocation.

Documents are all-or-nothing: a document is selected only when its full size
fits in what is left of the budget. Mandatory tiers are reserved before any
other document is considered; if they alone do not fit, the resolution fails
instead of hiding required context from the caller.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from stratum.core.documents.models import InstructionDocument
from stratum.core.exceptions import BudgetExceededByMandatoryTierError
from stratum.core.policy import DEFAULT_POLICY, PrecedencePolicy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Allocation:
    """Budget outcome: selected documents in precedence order, dropped in rejection order."""

    selected: Tuple[InstructionDocument, ...]
    dropped: Tuple[InstructionDocument, ...]

    @property
    def total_tokens(self) -> int:
        return sum(int(d.size_in_tokens or 0) for d in self.selected)


def _size(doc: InstructionDocument) -> int:
    return int(doc.size_in_tokens or 0)


def check_mandatory_budget(
    documents: Sequence[InstructionDocument],
    max_tokens: Optional[int],
    policy: PrecedencePolicy = DEFAULT_POLICY,
) -> Optional[BudgetExceededByMandatoryTierError]:
    """Return the overflow error for the minimum mandatory set, or None when it fits.

    The error names the mandatory documents that alone exceed the budget when
    there are any, otherwise the whole mandatory set.
    """
    if max_tokens is None:
        return None
    mandatory = [d for d in documents if policy.is_mandatory(d.tier)]
    required = sum(_size(d) for d in mandatory)
    if required <= max_tokens:
        return None
    oversized = [d for d in mandatory if _size(d) > max_tokens]
    offending = oversized or mandatory
    return BudgetExceededByMandatoryTierError(
        [(d.id, _size(d)) for d in offending], max_tokens=max_tokens
    )


def allocate(
    ordered_candidates: Sequence[InstructionDocument],
    max_tokens: Optional[int],
    policy: PrecedencePolicy = DEFAULT_POLICY,
) -> Allocation:
    """Select the candidates that fit ``max_tokens``.

    Args:
        ordered_candidates: Candidates, highest precedence first
        max_tokens: Budget; None means unlimited
        policy: Decides which tiers are mandatory

    Raises:
        BudgetExceededByMandatoryTierError: If mandatory documents alone exceed the budget
        ValueError: If ``max_tokens`` is negative
    """
    if max_tokens is None:
        return Allocation(selected=tuple(ordered_candidates), dropped=())
    if max_tokens < 0:
        raise ValueError("max_tokens must be >= 0")

    overflow = check_mandatory_budget(ordered_candidates, max_tokens, policy)
    if overflow is not None:
        raise overflow

    reserved = sum(_size(d) for d in ordered_candidates if policy.is_mandatory(d.tier))
    remaining = max_tokens - reserved
    selected: List[InstructionDocument] = []
    dropped: List[InstructionDocument] = []
    for doc in ordered_candidates:
        if policy.is_mandatory(doc.tier):
            selected.append(doc)
            continue
        size = _size(doc)
        if size <= remaining:
            selected.append(doc)
            remaining -= size
        else:
            dropped.append(doc)
            logger.debug(
                "Dropped %s (%s, %d tokens): %d tokens left of %d",
                doc.id,
                doc.tier.value,
                size,
                remaining,
                max_tokens,
            )
    return Allocation(selected=tuple(selected), dropped=tuple(dropped))


__all__ = ["Allocation", "allocate", "check_mandatory_budget"]
