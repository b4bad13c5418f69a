"""Operation log interface and an in-memory recorder."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Dict, List, Optional, Protocol
import uuid


class OperationLog(Protocol):
    """Receives file events emitted by mutating engine calls."""

    def start_operation(self, kind: str) -> str:
        """Open an operation and return its id."""

    def track_file_created(self, operation_id: str, path: str) -> None:
        ...

    def track_file_modified(self, operation_id: str, path: str) -> None:
        ...

    def track_file_deleted(self, operation_id: str, path: str) -> None:
        ...


@dataclass
class OperationRecord:
    id: str
    kind: str
    started_at: str
    created: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)


class InMemoryOperationLog:
    """Keeps operation records for the lifetime of the process."""

    def __init__(self) -> None:
        self._operations: Dict[str, OperationRecord] = {}

    def start_operation(self, kind: str) -> str:
        operation_id = uuid.uuid4().hex
        self._operations[operation_id] = OperationRecord(
            id=operation_id,
            kind=kind,
            started_at=datetime.now(UTC).isoformat().replace("+00:00", "Z"),
        )
        return operation_id

    def track_file_created(self, operation_id: str, path: str) -> None:
        self._record(operation_id).created.append(path)

    def track_file_modified(self, operation_id: str, path: str) -> None:
        record = self._record(operation_id)
        if path not in record.modified:
            record.modified.append(path)

    def track_file_deleted(self, operation_id: str, path: str) -> None:
        self._record(operation_id).deleted.append(path)

    def get(self, operation_id: str) -> Optional[OperationRecord]:
        return self._operations.get(operation_id)

    def operations(self) -> List[OperationRecord]:
        return list(self._operations.values())

    def _record(self, operation_id: str) -> OperationRecord:
        try:
            return self._operations[operation_id]
        except KeyError as exc:
            raise KeyError(f"Unknown operation id: {operation_id}") from exc


__all__ = ["InMemoryOperationLog", "OperationLog", "OperationRecord"]
