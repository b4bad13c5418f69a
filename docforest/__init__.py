"""Hierarchical document decomposition and consistency engine."""

from .context import EngineContext
from .engine import DocumentEngine, StoreOutcome
from .errors import (
    ConflictError,
    DocForestError,
    NotFoundError,
    PartialFailureError,
    ValidationError,
)
from .logging import configure_logging, get_logger

__version__ = "0.1.0"

__all__ = [
    "ConflictError",
    "DocForestError",
    "DocumentEngine",
    "EngineContext",
    "NotFoundError",
    "PartialFailureError",
    "StoreOutcome",
    "ValidationError",
    "__version__",
    "configure_logging",
    "get_logger",
]
