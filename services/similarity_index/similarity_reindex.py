"""Reindex runner entry point.

Embeds every document of the vault into the vector collection.
Run directly for a one-shot full reindex; the API server handles
event-driven updates through its webhook.

Usage:
    python -m services.similarity_index.similarity_reindex [--prune]
"""

import argparse
import asyncio
import sys

from services.similarity_index.IndexService import IndexService
from services.similarity_index.ReindexService import ReindexService
from shared.clients.docs.DocsClientManager import DocsClientManager
from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.rag.RAGClientManager import RAGClientManager
from shared.errors import BridgeError
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import setup_logging
from shared.models.config import IndexSettings
from shared.notify.NotificationSink import NotificationSinkLogger


async def main(prune_orphans: bool = False) -> int:
    """Run the full reindex pipeline.

    Returns:
        int: Process exit code.
    """
    logger = setup_logging()
    config = HelperConfig(logger=logger)
    settings = IndexSettings.from_helper_config(config)

    embed_client = EmbedClientManager(helper_config=config).get_client()
    rag_client = RAGClientManager(helper_config=config).get_client()
    docs_client = DocsClientManager(helper_config=config).get_client()

    try:
        # both backends are required, there is no point in reindexing without either
        for client in (embed_client, rag_client):
            try:
                await client.boot()
                await client.do_healthcheck()
            except Exception as e:
                logger.error("Error booting %s client %s: %s. Aborting.", client.get_client_type().upper(), client.get_engine_name(), e)
                return 1

        notifier = NotificationSinkLogger(helper_config=config)
        index_service = IndexService(
            helper_config=config,
            settings=settings,
            embed_client=embed_client,
            rag_client=rag_client,
            notifier=notifier,
            docs_client=docs_client,
        )
        reindex_service = ReindexService(
            helper_config=config,
            settings=settings,
            index_service=index_service,
            notifier=notifier,
            docs_client=docs_client,
            rag_client=rag_client,
        )

        try:
            await index_service.bootstrap()
            report = await reindex_service.reindex_from_source(prune_orphans=prune_orphans)
        except BridgeError as e:
            logger.error("Reindex aborted: %s", e)
            return 1

        logger.info("Reindex report: %s", report.model_dump_json(), color="green")
        return 0 if not report.failed else 2
    finally:
        await embed_client.close()
        await rag_client.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Reindex all vault documents into the vector collection.")
    parser.add_argument("--prune", action="store_true", help="remove points of documents that no longer exist")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(prune_orphans=args.prune)))
