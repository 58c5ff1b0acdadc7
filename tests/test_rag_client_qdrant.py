import asyncio
import json

import httpx
import pytest

from shared.clients.rag.qdrant.RAGClientQdrant import RAGClientQdrant
from shared.errors import StoreInitError, StoreQueryError, StoreWriteError


class FakeQdrant:
    """Minimal stateful stand-in for the Qdrant REST API."""

    def __init__(self):
        self.collections: dict[str, dict] = {}
        self.requests: list[httpx.Request] = []
        self.fail: dict[tuple[str, str], int] = {}

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        if key in self.fail:
            return httpx.Response(self.fail[key], json={"status": {"error": "forced"}})

        parts = request.url.path.strip("/").split("/")
        name = parts[1]
        body = json.loads(request.content) if request.content else {}

        if parts == ["collections", name]:
            if request.method == "GET":
                if name in self.collections:
                    return httpx.Response(200, json={"result": {"status": "green"}, "status": "ok"})
                return httpx.Response(404, json={"status": {"error": "Not found"}})
            self.collections[name] = {"config": body, "points": {}}
            return httpx.Response(200, json={"result": True, "status": "ok"})

        if name not in self.collections:
            return httpx.Response(404, json={"status": {"error": "Not found"}})
        points = self.collections[name]["points"]

        if parts[2:] == ["points"] and request.method == "PUT":
            for point in body["points"]:
                points[point["id"]] = point
            return httpx.Response(200, json={"result": {"status": "completed"}, "status": "ok"})
        if parts[2:] == ["points", "delete"]:
            for point_id in body["points"]:
                points.pop(point_id, None)
            return httpx.Response(200, json={"result": {"status": "completed"}, "status": "ok"})
        if parts[2:] == ["points", "search"]:
            hits = [
                {"id": point["id"], "version": 1, "score": 0.9 - i * 0.1, "payload": point["payload"]}
                for i, point in enumerate(points.values())
            ]
            return httpx.Response(200, json={"result": hits[: body["limit"]], "status": "ok", "time": 0.001})
        if parts[2:] == ["points", "scroll"]:
            ids = sorted(points)
            start = ids.index(body["offset"]) if "offset" in body else 0
            page = ids[start:start + body["limit"]]
            next_offset = ids[start + body["limit"]] if start + body["limit"] < len(ids) else None
            return httpx.Response(200, json={
                "result": {
                    "points": [{"id": pid, "payload": points[pid]["payload"]} for pid in page],
                    "next_page_offset": next_offset,
                },
                "status": "ok",
                "time": 0.001,
            })
        if len(parts) == 4 and parts[2] == "points" and request.method == "GET":
            point = points.get(parts[3])
            if point is None:
                return httpx.Response(404, json={"status": {"error": "Not found"}})
            return httpx.Response(200, json={"result": {"id": point["id"], "payload": point["payload"]}, "status": "ok"})
        return httpx.Response(400, json={"status": {"error": "unexpected request"}})


@pytest.fixture
def qdrant_env(monkeypatch):
    monkeypatch.setenv("RAG_QDRANT_BASE_URL", "http://qdrant.test:6333")
    monkeypatch.setenv("RAG_QDRANT_COLLECTION", "notes")
    monkeypatch.delenv("RAG_QDRANT_API_KEY", raising=False)


def _run(helper_config, handler, scenario):
    async def runner():
        client = RAGClientQdrant(helper_config=helper_config)
        await client.boot(transport=httpx.MockTransport(handler))
        try:
            return await scenario(client)
        finally:
            await client.close()

    return asyncio.run(runner())


def test_ensure_collection_is_idempotent(helper_config, qdrant_env):
    fake = FakeQdrant()

    async def scenario(client):
        return await client.do_ensure_collection(768), await client.do_ensure_collection(768)

    created, created_again = _run(helper_config, fake, scenario)

    assert (created, created_again) == (True, False)
    puts = [r for r in fake.requests if r.method == "PUT"]
    assert len(puts) == 1
    assert str(puts[0].url) == "http://qdrant.test:6333/collections/notes"
    assert fake.collections["notes"]["config"] == {"vectors": {"size": 768, "distance": "Cosine"}}


@pytest.mark.parametrize("distance, expected", [("euclidean", "Euclid"), ("dot", "Dot"), ("COSINE", "Cosine")])
def test_distance_mapping(helper_config, qdrant_env, distance, expected):
    fake = FakeQdrant()

    async def scenario(client):
        await client.do_ensure_collection(4, distance=distance)

    _run(helper_config, fake, scenario)

    assert fake.collections["notes"]["config"]["vectors"]["distance"] == expected


def test_unknown_distance_is_rejected(helper_config, qdrant_env):
    async def scenario(client):
        await client.do_ensure_collection(4, distance="manhattan")

    with pytest.raises(ValueError):
        _run(helper_config, FakeQdrant(), scenario)


def test_existence_check_failure_raises_init_error(helper_config, qdrant_env):
    fake = FakeQdrant()
    fake.fail[("GET", "/collections/notes")] = 500

    async def scenario(client):
        await client.do_ensure_collection(4)

    with pytest.raises(StoreInitError) as exc_info:
        _run(helper_config, fake, scenario)
    assert exc_info.value.status_code == 500


def test_create_failure_raises_init_error(helper_config, qdrant_env):
    fake = FakeQdrant()
    fake.fail[("PUT", "/collections/notes")] = 400

    async def scenario(client):
        await client.do_ensure_collection(4)

    with pytest.raises(StoreInitError):
        _run(helper_config, fake, scenario)


def test_unreachable_backend_raises_init_error(helper_config, qdrant_env):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario(client):
        await client.do_ensure_collection(4)

    with pytest.raises(StoreInitError):
        _run(helper_config, refuse, scenario)


def test_upsert_sends_point_and_waits(helper_config, qdrant_env):
    fake = FakeQdrant()

    async def scenario(client):
        await client.do_ensure_collection(3)
        await client.do_upsert_point("p-1", [0.1, 0.2, 0.3], {"path": "a.md"})

    _run(helper_config, fake, scenario)

    upsert = fake.requests[-1]
    assert upsert.method == "PUT"
    assert upsert.url.path == "/collections/notes/points"
    assert upsert.url.params["wait"] == "true"
    assert json.loads(upsert.content) == {
        "points": [{"id": "p-1", "vector": [0.1, 0.2, 0.3], "payload": {"path": "a.md"}}]
    }
    assert fake.collections["notes"]["points"]["p-1"]["payload"] == {"path": "a.md"}


def test_upsert_failure_raises_write_error(helper_config, qdrant_env):
    fake = FakeQdrant()
    fake.fail[("PUT", "/collections/notes/points")] = 500

    async def scenario(client):
        await client.do_ensure_collection(3)
        await client.do_upsert_point("p-1", [0.1, 0.2, 0.3], {"path": "a.md"})

    with pytest.raises(StoreWriteError) as exc_info:
        _run(helper_config, fake, scenario)
    assert exc_info.value.status_code == 500


def test_delete_of_missing_point_and_collection_is_ok(helper_config, qdrant_env):
    fake = FakeQdrant()

    async def scenario(client):
        # collection does not exist yet, backend answers 404
        await client.do_delete_point("p-1")
        await client.do_ensure_collection(3)
        await client.do_delete_point("p-1")

    _run(helper_config, fake, scenario)

    delete = fake.requests[-1]
    assert delete.url.path == "/collections/notes/points/delete"
    assert json.loads(delete.content) == {"points": ["p-1"]}


def test_delete_failure_raises_write_error(helper_config, qdrant_env):
    fake = FakeQdrant()
    fake.fail[("POST", "/collections/notes/points/delete")] = 500

    async def scenario(client):
        await client.do_delete_point("p-1")

    with pytest.raises(StoreWriteError):
        _run(helper_config, fake, scenario)


def test_search_payload_and_hits(helper_config, qdrant_env):
    fake = FakeQdrant()

    async def scenario(client):
        await client.do_ensure_collection(2)
        await client.do_upsert_point("p-1", [1.0, 0.0], {"path": "a.md"})
        await client.do_upsert_point("p-2", [0.0, 1.0], {"path": "b.md"})
        return await client.do_search([1.0, 0.0], limit=6, score_threshold=0.7)

    hits = _run(helper_config, fake, scenario)

    search = fake.requests[-1]
    assert json.loads(search.content) == {
        "vector": [1.0, 0.0],
        "limit": 6,
        "with_payload": True,
        "score_threshold": 0.7,
    }
    assert [hit.point_id for hit in hits] == ["p-1", "p-2"]
    assert hits[0].payload == {"path": "a.md"}
    assert hits[0].score == pytest.approx(0.9)


def test_search_failure_raises_query_error(helper_config, qdrant_env):
    fake = FakeQdrant()
    fake.fail[("POST", "/collections/notes/points/search")] = 500

    async def scenario(client):
        await client.do_search([1.0], limit=6, score_threshold=0.7)

    with pytest.raises(StoreQueryError):
        _run(helper_config, fake, scenario)


def test_fetch_point(helper_config, qdrant_env):
    fake = FakeQdrant()

    async def scenario(client):
        await client.do_ensure_collection(1)
        await client.do_upsert_point("p-1", [1.0], {"path": "a.md", "content_hash": "abc"})
        return await client.do_fetch_point("p-1"), await client.do_fetch_point("p-404")

    found, missing = _run(helper_config, fake, scenario)

    assert found == {"path": "a.md", "content_hash": "abc"}
    assert missing is None


def test_scroll_all_follows_pagination(helper_config, qdrant_env):
    fake = FakeQdrant()

    async def scenario(client):
        await client.do_ensure_collection(1)
        for i in range(5):
            await client.do_upsert_point(f"p-{i}", [1.0], {"path": f"{i}.md"})
        return await client.do_scroll_all(with_payload=["path"], page_size=2)

    result = _run(helper_config, fake, scenario)

    assert sorted(point["payload"]["path"] for point in result.result) == ["0.md", "1.md", "2.md", "3.md", "4.md"]
    assert result.next_page_offset is None
    scrolls = [r for r in fake.requests if r.url.path.endswith("/scroll")]
    assert len(scrolls) == 3
    assert json.loads(scrolls[1].content)["offset"] == "p-2"


def test_api_key_header(helper_config, qdrant_env, monkeypatch):
    monkeypatch.setenv("RAG_QDRANT_API_KEY", "secret")
    fake = FakeQdrant()

    async def scenario(client):
        await client.do_ensure_collection(1)

    _run(helper_config, fake, scenario)

    assert all(r.headers["api-key"] == "secret" for r in fake.requests)


@pytest.mark.parametrize("body", [
    {"text": "<html>proxy error</html>"},
    {"json": [1, 2]},
    {"json": {"result": [{"id": "p-1"}], "status": "ok"}},
])
@pytest.mark.parametrize("call", [
    lambda client: client.do_search([1.0], limit=6, score_threshold=0.7),
    lambda client: client.do_fetch_point("p-1"),
    lambda client: client.do_scroll(with_payload=["path"], limit=10),
])
def test_malformed_response_raises_query_error(helper_config, qdrant_env, body, call):
    async def scenario(client):
        await call(client)

    with pytest.raises(StoreQueryError):
        _run(helper_config, lambda request: httpx.Response(200, **body), scenario)
