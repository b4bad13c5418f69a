"""Exception hierarchy raised by the decomposition and consistency engine."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover - typing aid
    from docforest.models import RepairResult


class DocForestError(RuntimeError):
    """Base class for every error the engine raises on purpose."""


class ValidationError(DocForestError):
    """Raised for malformed input: bad thresholds, empty titles, lossy splits."""


class NotFoundError(DocForestError):
    """Raised when a referenced hub or document does not exist."""

    def __init__(self, path: str, message: str | None = None) -> None:
        super().__init__(message or f"Document not found: {path}")
        self.path = path


class ConflictError(DocForestError):
    """Raised when a generated path collides with an existing document."""

    def __init__(self, path: str, message: str | None = None) -> None:
        super().__init__(message or f"Document already exists: {path}")
        self.path = path


class PartialFailureError(DocForestError):
    """Raised on request when a repair batch finished with per-item errors."""

    def __init__(self, message: str, result: "RepairResult") -> None:
        super().__init__(message)
        self.result = result


__all__ = [
    "ConflictError",
    "DocForestError",
    "NotFoundError",
    "PartialFailureError",
    "ValidationError",
]
