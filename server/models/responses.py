from pydantic import BaseModel

from shared.models.document import IndexStatus
from shared.models.reindex import ProgressReport


class AcceptedResponse(BaseModel):
    status: str = "accepted"
    path: str | None = None


class StatusResponse(BaseModel):
    path: str
    status: IndexStatus


class ReindexStatusResponse(BaseModel):
    running: bool
    last_report: ProgressReport | None = None
    notifications: list[str] = []
