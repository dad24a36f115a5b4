from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping, Tuple


class StratumError(Exception):
    """Base exception for Stratum."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class DuplicateDocumentIDError(StratumError, ValueError):
    """Raised when a document id is already present in the registry."""

    def __init__(self, document_id: str, *, context: Mapping[str, Any] | None = None) -> None:
        ctx = dict(context or {})
        ctx["document_id"] = document_id
        StratumError.__init__(self, f"Duplicate document id: {document_id}", context=ctx)
        self.document_id = document_id


class InvalidPatternSyntaxError(StratumError, ValueError):
    """Raised when an applicability pattern cannot be compiled."""

    def __init__(
        self,
        pattern: str,
        reason: str,
        *,
        document_id: str | None = None,
    ) -> None:
        ctx: Dict[str, Any] = {"pattern": pattern, "reason": reason}
        if document_id:
            ctx["document_id"] = document_id
        prefix = f"Document {document_id}: " if document_id else ""
        StratumError.__init__(self, f"{prefix}invalid pattern {pattern!r}: {reason}", context=ctx)
        self.pattern = pattern
        self.reason = reason
        self.document_id = document_id


class InvalidDocumentError(StratumError, ValueError):
    """Raised when a document violates a registration invariant."""

    def __init__(self, document_id: str, reason: str) -> None:
        StratumError.__init__(
            self,
            f"Document {document_id}: {reason}",
            context={"document_id": document_id, "reason": reason},
        )
        self.document_id = document_id
        self.reason = reason


class BudgetExceededByMandatoryTierError(StratumError):
    """Raised when mandatory-tier documents alone do not fit the token budget."""

    def __init__(self, offending: Iterable[Tuple[str, int]], max_tokens: int) -> None:
        self.offending = tuple(offending)
        self.max_tokens = max_tokens
        total = sum(size for _, size in self.offending)
        StratumError.__init__(
            self,
            f"Mandatory documents need {total} tokens but the budget is {max_tokens}",
            context={
                "max_tokens": max_tokens,
                "required_tokens": total,
                "documents": [{"id": doc_id, "sizeInTokens": size} for doc_id, size in self.offending],
            },
        )


class UnknownExplicitTemplateError(StratumError, LookupError):
    """Raised when an explicit invocation names no registered prompt file."""

    def __init__(self, name: str) -> None:
        StratumError.__init__(self, f"No prompt file named {name!r}", context={"name": name})
        self.name = name


class ResolutionCancelledError(StratumError):
    """Raised when a caller-supplied cancel token is set mid-resolution."""


class DocumentLoadError(StratumError):
    """Raised when an instruction file on disk cannot be turned into a document."""

    def __init__(self, path: str, reason: str) -> None:
        StratumError.__init__(self, f"{path}: {reason}", context={"path": path, "reason": reason})
        self.path = path
        self.reason = reason


class ConfigError(StratumError):
    """Raised when configuration cannot be loaded or fails schema validation."""


__all__ = [
    "StratumError",
    "DuplicateDocumentIDError",
    "InvalidPatternSyntaxError",
    "InvalidDocumentError",
    "BudgetExceededByMandatoryTierError",
    "UnknownExplicitTemplateError",
    "ResolutionCancelledError",
    "DocumentLoadError",
    "ConfigError",
]
