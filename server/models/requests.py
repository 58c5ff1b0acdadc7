from pydantic import BaseModel

from shared.models.document import DocumentEventKind


class DocumentEventRequest(BaseModel):
    path: str
    event: DocumentEventKind


class SimilarRequest(BaseModel):
    path: str


class ReindexRequest(BaseModel):
    prune_orphans: bool = False
