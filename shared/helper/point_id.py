"""Deterministic point IDs for documents stored in the vector backend."""

import uuid

# Fixed namespace for deterministic UUIDv5 point IDs.
# Changing this value would invalidate all existing point IDs in the collection.
_POINT_ID_NAMESPACE = uuid.UUID("3b1f9e52-7c4a-5d08-9a6e-2f41c8d7b905")


def make_point_id(path: str) -> str:
    """Build a deterministic UUID5 point ID for a document path.

    The same path always maps to the same point ID, so re-indexing a document
    overwrites its vector instead of inserting a duplicate.

    Args:
        path (str): The document path, unique within the vault.

    Returns:
        str: UUID string usable as a Qdrant point ID.
    """
    return str(uuid.uuid5(_POINT_ID_NAMESPACE, path))
