"""Error taxonomy shared by the clients and the indexing services."""


class BridgeError(Exception):
    """Base class for all errors raised by the similarity bridge.

    Attributes:
        message (str): Human-readable description of the failure.
        status_code (int | None): HTTP status returned by the backend, if any.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class EmbeddingServiceError(BridgeError):
    """The embedding backend was unreachable or returned no usable vector."""


class StoreError(BridgeError):
    """Base class for vector store failures."""


class StoreInitError(StoreError):
    """Collection bootstrap (existence check or create) failed."""


class StoreWriteError(StoreError):
    """Upsert or delete of a point failed."""


class StoreQueryError(StoreError):
    """Nearest-neighbour search failed."""


class QueryError(BridgeError):
    """A similarity query failed as a whole. Wraps the underlying cause."""


class DocumentSourceError(BridgeError):
    """The document source could not list or read documents."""


class DocumentNotFoundError(DocumentSourceError):
    """The requested document does not exist in the document source."""
