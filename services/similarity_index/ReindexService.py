"""Bulk reindex service.

Walks the full document set and (re)indexes every document through the
IndexService, reporting progress to the notification sink. Optionally
removes points whose document no longer exists.
"""

import asyncio
from functools import partial
from typing import Awaitable, Callable

from services.similarity_index.IndexService import IndexService
from shared.clients.docs.DocsClientInterface import DocsClientInterface
from shared.clients.rag.RAGClientInterface import RAGClientInterface
from shared.errors import BridgeError, DocumentNotFoundError, StoreError
from shared.helper.HelperConfig import HelperConfig
from shared.models.config import IndexSettings
from shared.models.document import Document
from shared.models.reindex import ProgressReport
from shared.notify.NotificationSink import NotificationLevel, NotificationSink, NotificationSinkComposite


class ReindexService:
    """Orchestrates full reindex runs over the whole corpus."""

    def __init__(
        self,
        helper_config: HelperConfig,
        settings: IndexSettings,
        index_service: IndexService,
        notifier: NotificationSink,
        docs_client: DocsClientInterface | None = None,
        rag_client: RAGClientInterface | None = None,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._settings = settings
        self._index = index_service
        self._notifier = NotificationSinkComposite(helper_config, [notifier])
        self._docs = docs_client
        self._rag = rag_client
        self._run_lock = asyncio.Lock()
        self._last_report: ProgressReport | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    def is_running(self) -> bool:
        return self._run_lock.locked()

    def get_last_report(self) -> ProgressReport | None:
        return self._last_report

    ##########################################
    ############### CORE REINDEX #############
    ##########################################

    async def reindex_all(self, documents: list[Document]) -> ProgressReport:
        """Index every given document. Single failures never abort the run.

        Documents are processed with at most `concurrency` in flight; with the
        default of 1 they are processed one by one in the given order. A
        progress notification is sent every `progress_every` processed
        documents, plus a final completion notification.

        Args:
            documents (list[Document]): The documents to index, with their content.

        Returns:
            ProgressReport: Counts of indexed, skipped and failed documents.
        """
        return await self._run(
            [(doc.path, partial(self._index.on_create_or_modify, doc)) for doc in documents]
        )

    async def reindex_paths(self, paths: list[str]) -> ProgressReport:
        """Read and index every given path. Single failures never abort the run.

        Each document is read only when its turn comes, under its path lock,
        so edits and deletes that arrive during the run are never overwritten
        with older content. Paths that vanished in the meantime count as skipped.

        Args:
            paths (list[str]): The document paths to index.

        Returns:
            ProgressReport: Counts of indexed, skipped and failed documents.
        """
        return await self._run([(path, partial(self._index.index_path, path)) for path in paths])

    async def _run(self, jobs: list[tuple[str, Callable[[], Awaitable[bool]]]]) -> ProgressReport:
        async with self._run_lock:
            report = ProgressReport(total=len(jobs))
            self._notifier.notify(f"Processing {report.total} documents...")
            self.logging.info(
                "Starting reindex of %d documents (concurrency=%d).", report.total, self._settings.concurrency
            )

            sem = asyncio.Semaphore(self._settings.concurrency)
            await asyncio.gather(*[self._reindex_one(path, index_one, report, sem) for path, index_one in jobs])

            level = NotificationLevel.WARNING if report.failed else NotificationLevel.SUCCESS
            self._notifier.notify(
                f"All documents processed! {report.indexed} indexed, {report.skipped} unchanged, {report.failed} failed.",
                level,
            )
            self.logging.info(
                "Reindex complete: %d indexed, %d skipped, %d errors.",
                report.indexed, report.skipped, report.failed,
            )
            self._last_report = report
            return report

    async def _reindex_one(
        self,
        path: str,
        index_one: Callable[[], Awaitable[bool]],
        report: ProgressReport,
        sem: asyncio.Semaphore,
    ) -> None:
        async with sem:
            try:
                indexed = await index_one()
            except DocumentNotFoundError:
                self.logging.info("Document '%s' was removed during the reindex. Skipping.", path)
                report.skipped += 1
            except BridgeError:
                # already logged and notified by the index service
                report.failed += 1
                report.failed_paths.append(path)
            except Exception:
                self.logging.exception("Unexpected error while indexing '%s'.", path)
                report.failed += 1
                report.failed_paths.append(path)
            else:
                if indexed:
                    report.indexed += 1
                else:
                    report.skipped += 1

            report.processed += 1
            if report.processed % self._settings.progress_every == 0:
                self._notifier.notify(f"Processed {report.processed}/{report.total} documents")

    async def reindex_from_source(self, prune_orphans: bool = False) -> ProgressReport:
        """Enumerate the corpus from the document source and reindex it path by path.

        Args:
            prune_orphans (bool): Also remove points whose document no longer exists.

        Returns:
            ProgressReport: The run report.

        Raises:
            RuntimeError: If no document source is configured.
            DocumentSourceError: If the corpus cannot be listed.
        """
        if self._docs is None:
            raise RuntimeError("No document source configured.")
        report = await self.reindex_paths(await self._docs.do_list_paths())
        if prune_orphans:
            # listed again, documents may have been created during the run
            report.orphans_removed = await self.prune_orphans(set(await self._docs.do_list_paths()))
        return report

    ##########################################
    ############ ORPHAN CLEANUP ##############
    ##########################################

    async def prune_orphans(self, valid_paths: set[str]) -> int:
        """Remove points whose payload path is not part of the corpus anymore.

        Args:
            valid_paths (set[str]): Paths of all documents currently in the corpus.

        Returns:
            int: Number of removed points.

        Raises:
            RuntimeError: If no RAG client is configured.
        """
        if self._rag is None:
            raise RuntimeError("No RAG client configured.")

        self.logging.info("Starting orphan cleanup (scrolling collection for stale paths)...")
        try:
            scroll_result = await self._rag.do_scroll_all(with_payload=["path"])
        except StoreError as exc:
            self.logging.error("Orphan cleanup scroll failed: %s. Skipping cleanup.", exc)
            self._notifier.notify("Orphan cleanup failed", NotificationLevel.ERROR)
            return 0

        stored_paths = {
            (point.get("payload") or {}).get("path")
            for point in scroll_result.result
        }
        orphan_paths = sorted(path for path in stored_paths if path and path not in valid_paths)
        if not orphan_paths:
            self.logging.info("Orphan cleanup: no stale documents found.")
            return 0

        self.logging.info("Orphan cleanup: removing vectors for %d stale document(s).", len(orphan_paths))
        removed = 0
        for path in orphan_paths:
            if await self._index.on_delete(path):
                removed += 1
        self.logging.info("Orphan cleanup complete: removed vectors for %d document(s).", removed)
        return removed
