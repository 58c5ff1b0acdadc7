"""Pydantic models for bulk reindex runs."""

from pydantic import BaseModel


class ProgressReport(BaseModel):
    """Outcome of a bulk reindex run.

    Attributes:
        total:           Number of documents handed to the run.
        processed:       Number of documents finished so far (indexed + skipped + failed).
        indexed:         Documents embedded and upserted.
        skipped:         Documents skipped because their content was unchanged.
        failed:          Documents whose embedding or upsert failed.
        failed_paths:    Paths of the failed documents.
        orphans_removed: Points removed because their document no longer exists.
    """

    total: int = 0
    processed: int = 0
    indexed: int = 0
    skipped: int = 0
    failed: int = 0
    failed_paths: list[str] = []
    orphans_removed: int = 0
