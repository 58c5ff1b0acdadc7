import asyncio

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from conftest import FakeDocsClient
from server.routers.QueryRouter import router as query_router
from server.routers.ReindexRouter import router as reindex_router
from server.routers.WebhookRouter import router as webhook_router
from services.similarity_index.IndexService import IndexService
from services.similarity_index.ReindexService import ReindexService
from shared.models.document import Document

API_KEY = "test-key"
HEADERS = {"X-Api-Key": API_KEY}


async def _drain(app: FastAPI) -> None:
    while app.state.background_tasks:
        await asyncio.gather(*list(app.state.background_tasks), return_exceptions=True)


@pytest.fixture
def app(helper_config, settings, embed_client, rag_client, notifier, monkeypatch):
    monkeypatch.setenv("APP_API_KEY", API_KEY)
    docs_client = FakeDocsClient({"a.md": "apple", "b.md": "apple fruit", "c.md": "quantum chromodynamics"})
    index_service = IndexService(
        helper_config=helper_config,
        settings=settings,
        embed_client=embed_client,
        rag_client=rag_client,
        notifier=notifier,
        docs_client=docs_client,
    )
    asyncio.run(index_service.bootstrap())

    app = FastAPI()
    app.include_router(webhook_router)
    app.include_router(query_router)
    app.include_router(reindex_router)
    app.state.logging = helper_config.get_logger()
    app.state.helper_config = helper_config
    app.state.index_service = index_service
    app.state.reindex_service = ReindexService(
        helper_config=helper_config,
        settings=settings,
        index_service=index_service,
        notifier=notifier,
        docs_client=docs_client,
        rag_client=rag_client,
    )
    app.state.notification_memory = notifier
    app.state.background_tasks = set()
    return app


def test_wrong_api_key_is_rejected(app):
    with TestClient(app) as client:
        response = client.post("/similar", json={"path": "a.md"}, headers={"X-Api-Key": "wrong"})

    assert response.status_code == 401


def test_missing_api_key_is_rejected(app):
    with TestClient(app) as client:
        response = client.post("/similar", json={"path": "a.md"})

    assert response.status_code == 422


def test_webhook_indexes_document(app, rag_client):
    with TestClient(app) as client:
        response = client.post("/webhook/document", json={"path": "a.md", "event": "created"}, headers=HEADERS)
        client.portal.call(_drain, app)
        status = client.get("/status", params={"path": "a.md"}, headers=HEADERS)

    assert response.status_code == 200
    assert response.json() == {"status": "accepted", "path": "a.md"}
    assert status.json() == {"path": "a.md", "status": "indexed"}
    assert len(rag_client.points) == 1


def test_webhook_delete_event(app, rag_client):
    asyncio.run(app.state.index_service.on_create_or_modify(Document(path="a.md", content="apple")))

    with TestClient(app) as client:
        client.post("/webhook/document", json={"path": "a.md", "event": "deleted"}, headers=HEADERS)
        client.portal.call(_drain, app)
        status = client.get("/status", params={"path": "a.md"}, headers=HEADERS)

    assert rag_client.points == {}
    assert status.json()["status"] == "unindexed"


def test_webhook_rejects_unknown_event(app):
    with TestClient(app) as client:
        response = client.post("/webhook/document", json={"path": "a.md", "event": "renamed"}, headers=HEADERS)

    assert response.status_code == 422


def test_similar_excludes_queried_document(app):
    for path, content in (("a.md", "apple"), ("b.md", "apple fruit")):
        asyncio.run(app.state.index_service.on_create_or_modify(Document(path=path, content=content)))

    with TestClient(app) as client:
        response = client.post("/similar", json={"path": "a.md"}, headers=HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["path"] == "a.md"
    assert [item["path"] for item in body["results"]] == ["b.md"]
    assert body["results"][0]["score"] == pytest.approx(2 ** -0.5)
    assert body["total"] == 1


def test_similar_unknown_document_is_404(app):
    with TestClient(app) as client:
        response = client.post("/similar", json={"path": "missing.md"}, headers=HEADERS)

    assert response.status_code == 404


def test_similar_backend_failure_is_502(app, rag_client):
    rag_client.fail_search = True

    with TestClient(app) as client:
        response = client.post("/similar", json={"path": "a.md"}, headers=HEADERS)

    assert response.status_code == 502


def test_reindex_runs_in_background(app, rag_client):
    with TestClient(app) as client:
        response = client.post("/reindex", json={"prune_orphans": True}, headers=HEADERS)
        client.portal.call(_drain, app)
        status = client.get("/reindex", headers=HEADERS)

    assert response.status_code == 202
    body = status.json()
    assert body["running"] is False
    assert body["last_report"]["indexed"] == 3
    assert body["last_report"]["failed"] == 0
    assert "Processing 3 documents..." in body["notifications"]
    assert len(rag_client.points) == 3


def test_reindex_without_body(app):
    with TestClient(app) as client:
        response = client.post("/reindex", headers=HEADERS)
        client.portal.call(_drain, app)

    assert response.status_code == 202
    assert app.state.reindex_service.get_last_report().total == 3
