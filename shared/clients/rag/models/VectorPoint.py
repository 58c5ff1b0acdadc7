"""VectorPoint model: metadata stored alongside each document vector in a RAG backend."""

from pydantic import BaseModel


class VectorPoint(BaseModel):
    """Payload stored alongside each document vector.

    There is exactly one point per document path; the point ID is derived
    from the path, so the path is kept here for result display and reverse
    lookup.

    Attributes:
        path:         Document path within the vault.
        content_hash: SHA-256 hex digest of the indexed content.
                      Used to skip re-embedding unchanged documents.
        indexed_at:   ISO-8601 timestamp of the last successful index.
    """

    path: str
    content_hash: str | None = None
    indexed_at: str | None = None
