"""
Resolution pipeline.

candidates (precedence.py) -> allocate (budget.py) -> compose (composer.py),
orchestrated per request by ResolutionService (service.py).
"""
from __future__ import annotations

from .models import ContextEntry, DroppedDocument, Finding, ResolvedContext
from .precedence import by_name, candidates, order_documents
from .budget import Allocation, allocate, check_mandatory_budget
from .composer import Composer, compose
from .service import ResolutionService

__all__ = [
    "ContextEntry",
    "DroppedDocument",
    "Finding",
    "ResolvedContext",
    "candidates",
    "order_documents",
    "by_name",
    "Allocation",
    "allocate",
    "check_mandatory_budget",
    "Composer",
    "compose",
    "ResolutionService",
]
