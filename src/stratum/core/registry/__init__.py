"""Document registry public surface.

This is a subpackage so the immutable snapshot type and the registry that
publishes snapshots can live in focused modules.
"""
from __future__ import annotations

from .snapshot import (
    RegistryHandle,
    RegistrySnapshot,
    build_snapshot,
    document_problems,
    iter_problems,
    size_document,
)
from .registry import DocumentRegistry

__all__ = [
    "DocumentRegistry",
    "RegistryHandle",
    "RegistrySnapshot",
    "build_snapshot",
    "document_problems",
    "iter_problems",
    "size_document",
]
