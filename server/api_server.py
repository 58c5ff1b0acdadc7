"""FastAPI application entry point for the vault similarity bridge."""

import asyncio
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.logging.logging_setup import setup_logging
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import IndexSettings
from shared.clients.ClientInterface import ClientInterface
from shared.clients.docs.DocsClientManager import DocsClientManager
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.notify.NotificationSink import NotificationSinkComposite, NotificationSinkLogger, NotificationSinkMemory
from services.similarity_index.IndexService import IndexService
from services.similarity_index.ReindexService import ReindexService
from server.routers.WebhookRouter import router as webhook_router
from server.routers.QueryRouter import router as query_router
from server.routers.ReindexRouter import router as reindex_router

logging = setup_logging()
app_version = os.getenv("APP_VERSION", "unknown")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # when the app starts
    app.state.logging = logging
    app.state.helper_config = HelperConfig(logger=logging)
    settings = IndexSettings.from_helper_config(app.state.helper_config)

    embed_client = EmbedClientManager(helper_config=app.state.helper_config).get_client()
    rag_client = RAGClientManager(helper_config=app.state.helper_config).get_client()
    docs_client = DocsClientManager(helper_config=app.state.helper_config).get_client()
    http_clients: list[ClientInterface] = [embed_client, rag_client]

    logging.info("Booting all clients...")
    for client in http_clients:
        await client.boot()
    await check_connections(http_clients)
    logging.info("All clients booted successfully.")

    app.state.notification_memory = NotificationSinkMemory()
    notifier = NotificationSinkComposite(app.state.helper_config, [
        NotificationSinkLogger(helper_config=app.state.helper_config),
        app.state.notification_memory,
    ])
    app.state.index_service = IndexService(
        helper_config=app.state.helper_config,
        settings=settings,
        embed_client=embed_client,
        rag_client=rag_client,
        notifier=notifier,
        docs_client=docs_client,
    )
    app.state.reindex_service = ReindexService(
        helper_config=app.state.helper_config,
        settings=settings,
        index_service=app.state.index_service,
        notifier=notifier,
        docs_client=docs_client,
        rag_client=rag_client,
    )
    app.state.background_tasks = set()

    # collection must exist before the first upsert or search
    await app.state.index_service.bootstrap()

    # while the app is running...
    yield

    # when the app shuts down, let running index updates finish, then close all clients
    if app.state.background_tasks:
        logging.info("Waiting for %d background task(s)...", len(app.state.background_tasks))
        await asyncio.gather(*app.state.background_tasks, return_exceptions=True)
    logging.info("Shutting down, closing all clients...")
    for client in http_clients:
        await client.close()
    logging.info("All clients closed.")


app = FastAPI(
    title="vault_similarity_bridge",
    description=(
        "Semantic index for a vault of text documents. "
        "Documents are embedded into a vector database and similar documents are served via POST /similar. "
        "Incremental updates are triggered via POST /webhook/document, full reindex via POST /reindex."
    ),
    version=app_version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(webhook_router)
app.include_router(query_router)
app.include_router(reindex_router)


async def check_connections(clients: list[ClientInterface]) -> None:
    """Check connectivity to the embedding and vector backends on startup.

    Both are fatal, nothing can be indexed or queried without them.

    Raises:
        BridgeError: If a backend answers the healthcheck with a non-2xx status.
        httpx.HTTPError: If a backend is not reachable at all.
    """
    for client in clients:
        await client.do_healthcheck()
        logging.info("%s client '%s' is reachable.", client.get_client_type().upper(), client.get_engine_name())


if __name__ == "__main__":
    import uvicorn

    logging.info(
        "Starting vault_similarity_bridge API Server v%s from root dir: %s on port 8000...",
        app_version,
        os.environ.get("ROOT_DIR", os.getcwd()),
    )
    uvicorn.run(app, host="0.0.0.0", port=8000)
