import asyncio
import hashlib
import logging
import math

import pytest

from shared.clients.rag.models.Scroll import ScrollResult
from shared.errors import (
    DocumentNotFoundError,
    EmbeddingServiceError,
    StoreInitError,
    StoreQueryError,
    StoreWriteError,
)
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import IndexSettings
from shared.models.document import Document
from shared.models.search import SearchHit
from shared.notify.NotificationSink import NotificationSinkMemory


class FakeEmbedClient:
    """Bag-of-words embedding: every word increments one hashed dimension."""

    def __init__(self, dimension: int = 1024, fail_on: set[str] | None = None, delays: dict[str, float] | None = None):
        self.dimension = dimension
        self.fail_on = fail_on or set()
        self.delays = delays or {}
        self.calls: list[str] = []

    def get_model_name(self) -> str:
        return "fake-embed"

    async def do_fetch_embedding_vector_size(self) -> int:
        return self.dimension

    async def do_embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if text in self.delays:
            await asyncio.sleep(self.delays[text])
        if text in self.fail_on:
            raise EmbeddingServiceError("forced embedding failure", status_code=500)
        vector = [0.0] * self.dimension
        for word in text.lower().split():
            vector[int(hashlib.md5(word.encode("utf-8")).hexdigest(), 16) % self.dimension] += 1.0
        return vector


def _cosine(a: list[float], b: list[float]) -> float:
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 0.0
    return sum(x * y for x, y in zip(a, b)) / norm


class InMemoryRAGClient:
    """Vector store with the RAGClientInterface request surface, backed by dicts."""

    def __init__(self, collection_name: str = "test_notes"):
        self.collection_name = collection_name
        self.collections: dict[str, dict] = {}
        self.create_calls = 0
        self.fail_upsert = False
        self.fail_delete = False
        self.fail_search = False
        self.fail_scroll = False
        self.fail_fetch = False

    def get_collection_name(self) -> str:
        return self.collection_name

    @property
    def points(self) -> dict[str, dict]:
        return self.collections[self.collection_name]["points"]

    async def do_ensure_collection(self, vector_size: int, distance: str = "cosine", collection: str | None = None) -> bool:
        collection = collection or self.collection_name
        if collection in self.collections:
            return False
        if distance not in ("cosine", "euclidean", "dot"):
            raise StoreInitError(f"bad distance {distance}")
        self.create_calls += 1
        self.collections[collection] = {"size": vector_size, "distance": distance, "points": {}}
        return True

    async def do_upsert_point(self, point_id: str, vector: list[float], payload: dict, collection: str | None = None) -> None:
        collection = collection or self.collection_name
        if self.fail_upsert or collection not in self.collections:
            raise StoreWriteError("forced upsert failure", status_code=500)
        self.collections[collection]["points"][point_id] = {"id": point_id, "vector": vector, "payload": dict(payload)}

    async def do_delete_point(self, point_id: str, collection: str | None = None) -> None:
        if self.fail_delete:
            raise StoreWriteError("forced delete failure", status_code=500)
        collection = collection or self.collection_name
        if collection in self.collections:
            self.collections[collection]["points"].pop(point_id, None)

    async def do_search(self, vector: list[float], limit: int, score_threshold: float, collection: str | None = None) -> list[SearchHit]:
        if self.fail_search:
            raise StoreQueryError("forced search failure", status_code=500)
        collection = collection or self.collection_name
        scored = [
            SearchHit(point_id=point["id"], score=_cosine(vector, point["vector"]), payload=point["payload"])
            for point in self.collections[collection]["points"].values()
        ]
        scored = [hit for hit in scored if hit.score >= score_threshold]
        scored.sort(key=lambda hit: hit.score, reverse=True)
        return scored[:limit]

    async def do_fetch_point(self, point_id: str, collection: str | None = None) -> dict | None:
        if self.fail_fetch:
            raise StoreQueryError("forced fetch failure", status_code=502)
        collection = collection or self.collection_name
        point = self.collections[collection]["points"].get(point_id)
        return dict(point["payload"]) if point else None

    async def do_scroll_all(self, with_payload, page_size: int = 1000, collection: str | None = None) -> ScrollResult:
        if self.fail_scroll:
            raise StoreQueryError("forced scroll failure", status_code=500)
        collection = collection or self.collection_name
        points = [
            {"id": point["id"], "payload": {"path": point["payload"].get("path")}}
            for point in self.collections[collection]["points"].values()
        ]
        return ScrollResult(result=points, status="ok", time=0)


class FakeDocsClient:
    """Document source over a plain dict of path → content."""

    def __init__(self, documents: dict[str, str] | None = None):
        self.documents = dict(documents or {})

    def get_engine_name(self) -> str:
        return "fake"

    async def do_list_paths(self) -> list[str]:
        return sorted(self.documents)

    async def do_read_document(self, path: str) -> Document:
        if path not in self.documents:
            raise DocumentNotFoundError(f"Document '{path}' not found in vault.")
        return Document(path=path, content=self.documents[path])


@pytest.fixture
def helper_config() -> HelperConfig:
    return HelperConfig(logger=logging.getLogger("tests"))


@pytest.fixture
def settings() -> IndexSettings:
    return IndexSettings(vector_size=1024)


@pytest.fixture
def embed_client() -> FakeEmbedClient:
    return FakeEmbedClient()


@pytest.fixture
def rag_client() -> InMemoryRAGClient:
    return InMemoryRAGClient()


@pytest.fixture
def docs_client() -> FakeDocsClient:
    return FakeDocsClient()


@pytest.fixture
def notifier() -> NotificationSinkMemory:
    return NotificationSinkMemory()
