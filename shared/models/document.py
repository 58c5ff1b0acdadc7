"""Pydantic models for document data and document lifecycle events.

Hierarchy:
  Document          backend-independent document contract (path + text).
  DocumentEventKind lifecycle event types emitted by the document source.
  IndexStatus       logical index state of a document path.
"""

import hashlib
from enum import Enum

from pydantic import BaseModel


class Document(BaseModel):
    """Generic, backend-independent document representation.

    The path is the unique key within the vault and is what the point ID
    is derived from. Content is only held for the duration of one
    index or query operation.
    """

    path: str
    content: str

    def get_content_hash(self) -> str:
        """Return the SHA-256 hex digest of the document content.

        Returns:
            str: Hex digest used to detect unchanged content on re-index.
        """
        return hashlib.sha256(self.content.encode("utf-8")).hexdigest()


class DocumentEventKind(str, Enum):
    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


class IndexStatus(str, Enum):
    """Logical index state of a document path.

    UNINDEXED: no point exists for the path.
    INDEXED:   a point exists and reflects the last indexed content.
    STALE:     content changed (or re-index failed) since the last successful index.
    FAILED:    the last index attempt failed and no point is known to exist.
    """

    UNINDEXED = "unindexed"
    INDEXED = "indexed"
    STALE = "stale"
    FAILED = "failed"
