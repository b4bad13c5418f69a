"""Drift detection and repair across a document corpus."""

from .executor import ConsistencyExecutor
from .inspector import ConsistencyInspector

__all__ = ["ConsistencyExecutor", "ConsistencyInspector"]
