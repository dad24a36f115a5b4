"""
Instruction documents.

1. Models (models.py): Tier, EventType, InstructionDocument
2. Discovery (loader.py): turn instruction files on disk into documents
"""
from __future__ import annotations

from .models import EventType, InstructionDocument, Tier
from .loader import DocumentLoader, SourceRule

__all__ = [
    "Tier",
    "EventType",
    "InstructionDocument",
    "DocumentLoader",
    "SourceRule",
]
