"""Index service. Keeps the vector collection in sync with document lifecycle
events and answers "which documents are similar to this one" queries.

Index flow: document → embed client (text → vector) → RAG client upsert,
keyed by the point ID derived from the document path.
Query flow:  document → embed client → RAG client search → ranked paths,
with the queried document itself removed.
"""

import asyncio
import weakref
from datetime import datetime, timezone

from shared.clients.docs.DocsClientInterface import DocsClientInterface
from shared.clients.embed.EmbedClientInterface import EmbedClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.clients.rag.models.VectorPoint import VectorPoint
from shared.errors import (
    DocumentNotFoundError,
    DocumentSourceError,
    EmbeddingServiceError,
    QueryError,
    StoreError,
)
from shared.helper.HelperConfig import HelperConfig
from shared.helper.point_id import make_point_id
from shared.models.config import IndexSettings
from shared.models.document import Document, DocumentEventKind, IndexStatus
from shared.models.search import SimilarityResult, SimilarityResultItem
from shared.notify.NotificationSink import NotificationLevel, NotificationSink, NotificationSinkComposite


class IndexService:
    """Orchestrates embedding, point upsert/delete and similarity search per document.

    Operations on the same path are serialized through a per-path lock, so a
    modify followed by a delete (or two quick modifies) complete in the order
    they were issued. Operations on different paths run concurrently.
    """

    def __init__(
        self,
        helper_config: HelperConfig,
        settings: IndexSettings,
        embed_client: EmbedClientInterface,
        rag_client: RAGClientInterface,
        notifier: NotificationSink,
        docs_client: DocsClientInterface | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._settings = settings
        self._embed = embed_client
        self._rag = rag_client
        self._notifier = NotificationSinkComposite(helper_config, [notifier])
        self._docs = docs_client

        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()
        self._status: dict[str, IndexStatus] = {}

    ##########################################
    ################ GETTER ##################
    ##########################################

    def get_status(self, path: str) -> IndexStatus:
        """Return the logical index state of a path as seen by this process.

        Args:
            path (str): The document path.

        Returns:
            IndexStatus: UNINDEXED if the path was never touched.
        """
        return self._status.get(path, IndexStatus.UNINDEXED)

    def _get_lock(self, path: str) -> asyncio.Lock:
        lock = self._locks.get(path)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[path] = lock
        return lock

    ##########################################
    ############### BOOTSTRAP ################
    ##########################################

    async def bootstrap(self) -> int:
        """Make sure the collection exists. Safe to call on every startup.

        The vector size comes from the settings, or from the embedding backend
        when no size is configured.

        Returns:
            int: The vector size the collection was ensured with.

        Raises:
            EmbeddingServiceError: If the vector size has to be fetched and the backend fails.
            StoreInitError: If the collection cannot be checked or created.
        """
        vector_size = self._settings.vector_size
        if vector_size is None:
            vector_size = await self._embed.do_fetch_embedding_vector_size()
            self.logging.info(
                "Detected vector size %d for embedding model '%s'.", vector_size, self._embed.get_model_name()
            )
        await self._rag.do_ensure_collection(vector_size=vector_size, distance=self._settings.distance)
        return vector_size

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def on_event(self, kind: DocumentEventKind | str, path: str) -> bool:
        """Dispatch a lifecycle event from the document source.

        Never raises for backend failures; they are logged and notified.

        Args:
            kind (DocumentEventKind | str): "created", "modified" or "deleted".
            path (str): The affected document path.

        Returns:
            bool: True if the index was changed.

        Raises:
            ValueError: If the event kind is unknown.
            RuntimeError: If a create/modify event arrives without a document source.
        """
        kind = DocumentEventKind(kind)
        self.logging.debug("Received '%s' event for '%s'.", kind.value, path)

        if kind == DocumentEventKind.DELETED:
            return await self.on_delete(path)

        try:
            return await self.index_path(path)
        except DocumentNotFoundError:
            self.logging.warning("Document '%s' no longer exists. Ignoring '%s' event.", path, kind.value)
            return False
        except (DocumentSourceError, EmbeddingServiceError, StoreError):
            return False

    async def index_path(self, path: str) -> bool:
        """Read the current content of a path and index it.

        The read happens while the path lock is held, so the indexed content
        is never older than that of an event handled before it.

        Args:
            path (str): The document path.

        Returns:
            bool: True if the document was (re)indexed, False if it was skipped as unchanged.

        Raises:
            RuntimeError: If no document source is configured.
            DocumentNotFoundError: If the document does not exist (anymore).
            DocumentSourceError: If the document cannot be read. Already logged and notified.
            EmbeddingServiceError: If embedding failed. Already logged and notified.
            StoreError: If the upsert failed. Already logged and notified.
        """
        if self._docs is None:
            raise RuntimeError("No document source configured, cannot read document content.")

        async with self._get_lock(path):
            try:
                document = await self._docs.do_read_document(path)
            except DocumentNotFoundError:
                raise
            except DocumentSourceError as exc:
                self.logging.error("Reading document '%s' failed: %s", path, exc)
                self._notifier.notify(f"Failed to process document: {path}", NotificationLevel.ERROR)
                raise
            return await self._index_document(document)

    async def on_create_or_modify(self, document: Document) -> bool:
        """Embed a document and upsert its point.

        Args:
            document (Document): The document with its current content.

        Returns:
            bool: True if the document was (re)indexed, False if it was skipped as unchanged.

        Raises:
            EmbeddingServiceError: If embedding failed. Already logged and notified.
            StoreError: If the upsert failed. Already logged and notified.
        """
        async with self._get_lock(document.path):
            return await self._index_document(document)

    async def _index_document(self, document: Document) -> bool:
        # caller holds the path lock
        path = document.path
        prior = self.get_status(path)
        if prior == IndexStatus.INDEXED:
            self._status[path] = IndexStatus.STALE

        point_id = make_point_id(path)
        content_hash = document.get_content_hash()
        try:
            if self._settings.skip_unchanged:
                stored = await self._rag.do_fetch_point(point_id)
                if stored and stored.get("path") == path and stored.get("content_hash") == content_hash:
                    self._status[path] = IndexStatus.INDEXED
                    self.logging.debug("Document '%s' is unchanged. Skipping.", path)
                    return False

            vector = await self._embed.do_embed(document.content)
            payload = VectorPoint(
                path=path,
                content_hash=content_hash,
                indexed_at=datetime.now(timezone.utc).isoformat(),
            )
            await self._rag.do_upsert_point(point_id=point_id, vector=vector, payload=payload.model_dump())
        except (EmbeddingServiceError, StoreError) as exc:
            had_point = prior in (IndexStatus.INDEXED, IndexStatus.STALE)
            self._status[path] = IndexStatus.STALE if had_point else IndexStatus.FAILED
            self.logging.error("Error processing document '%s': %s", path, exc)
            self._notifier.notify(f"Failed to process document: {path}", NotificationLevel.ERROR)
            raise

        self._status[path] = IndexStatus.INDEXED
        self.logging.info("Indexed document '%s' (point %s, %d dims).", path, point_id, len(vector))
        return True

    async def on_delete(self, path: str) -> bool:
        """Remove the point of a deleted document.

        A missing point is not an error. On failure the point may remain as
        an orphan; queries can then surface a path that no longer exists.

        Args:
            path (str): The deleted document path.

        Returns:
            bool: True if the delete succeeded, False if it failed.
        """
        async with self._get_lock(path):
            point_id = make_point_id(path)
            try:
                await self._rag.do_delete_point(point_id)
            except StoreError as exc:
                self.logging.error("Error deleting embedding for '%s': %s", path, exc)
                self._notifier.notify(f"Failed to delete embedding for: {path}", NotificationLevel.ERROR)
                return False

            self._status.pop(path, None)
            self.logging.info("Deleted embedding for '%s' (point %s).", path, point_id)
            self._notifier.notify(f"Embedding deleted for: {path}")
            return True

    ##########################################
    ################ QUERY ###################
    ##########################################

    async def query(self, document: Document) -> SimilarityResult:
        """Find the documents most similar to the given one.

        Never returns the queried document itself. Results are sorted by score,
        descending, hold at most `query_limit` items and only scores at or above
        `score_threshold`.

        Args:
            document (Document): The document to compare against, with its current content.

        Returns:
            SimilarityResult: The ranked similar documents. Empty if nothing matched.

        Raises:
            QueryError: If embedding or search failed.
        """
        limit = self._settings.query_limit
        threshold = self._settings.score_threshold
        try:
            vector = await self._embed.do_embed(document.content)
            # one extra slot for the document's own point
            hits = await self._rag.do_search(vector=vector, limit=limit + 1, score_threshold=threshold)
        except (EmbeddingServiceError, StoreError) as exc:
            self.logging.error("Error finding similar documents for '%s': %s", document.path, exc)
            self._notifier.notify("Failed to find similar documents", NotificationLevel.ERROR)
            raise QueryError(
                f"Similarity query for '{document.path}' failed: {exc.message}",
                status_code=exc.status_code,
            ) from exc

        items = [
            SimilarityResultItem(path=hit.payload["path"], score=hit.score)
            for hit in hits
            if hit.payload.get("path") and hit.payload["path"] != document.path and hit.score >= threshold
        ]
        items.sort(key=lambda item: item.score, reverse=True)
        items = items[:limit]

        if not items:
            self._notifier.notify("No similar documents found")
        self.logging.info("Query for '%s' returned %d similar documents.", document.path, len(items))
        return SimilarityResult(path=document.path, results=items, total=len(items))

    async def query_path(self, path: str) -> SimilarityResult:
        """Read a document from the document source and query for similar ones.

        Args:
            path (str): The document path.

        Returns:
            SimilarityResult: The ranked similar documents.

        Raises:
            RuntimeError: If no document source is configured.
            DocumentNotFoundError: If the document does not exist.
            DocumentSourceError: If the document cannot be read.
            QueryError: If embedding or search failed.
        """
        if self._docs is None:
            raise RuntimeError("No document source configured.")
        document = await self._docs.do_read_document(path)
        return await self.query(document)
