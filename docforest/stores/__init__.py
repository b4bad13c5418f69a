"""Collaborator interfaces and reference stores."""

from .documents import DocumentStore, FileSystemDocumentStore
from .metadata_index import IndexEntry, JsonMetadataIndex, MetadataIndex
from .operations import InMemoryOperationLog, OperationLog, OperationRecord

__all__ = [
    "DocumentStore",
    "FileSystemDocumentStore",
    "InMemoryOperationLog",
    "IndexEntry",
    "JsonMetadataIndex",
    "MetadataIndex",
    "OperationLog",
    "OperationRecord",
]
