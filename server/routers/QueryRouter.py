"""Query router: similar-document lookup and index status."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import SimilarRequest
from server.models.responses import StatusResponse
from shared.errors import DocumentNotFoundError, DocumentSourceError, QueryError
from shared.models.search import SimilarityResult

router = APIRouter()


@router.post(
    "/similar",
    dependencies=[Depends(verify_api_key)],
    tags=["Query"],
    response_model=SimilarityResult,
)
async def handle_similar(request: Request, body: SimilarRequest) -> SimilarityResult:
    """Return the documents most similar to the given vault document.

    Args:
        request (Request): The incoming request (carries app state).
        body (SimilarRequest): The path of the document to compare against.

    Returns:
        SimilarityResult: Ranked list of similar documents, never containing the document itself.

    Raises:
        HTTPException: 404 if the document does not exist, 502 if a backend failed.
    """
    request.app.state.logging.info("Similarity query received for '%s'", body.path)
    index_service = request.app.state.index_service
    try:
        return await index_service.query_path(body.path)
    except DocumentNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    except (QueryError, DocumentSourceError) as exc:
        raise HTTPException(status_code=502, detail=exc.message)


@router.get(
    "/status",
    dependencies=[Depends(verify_api_key)],
    tags=["Query"],
    response_model=StatusResponse,
)
async def handle_status(request: Request, path: str = Query(...)) -> StatusResponse:
    """Return the index status of a document as seen by this server process."""
    index_service = request.app.state.index_service
    return StatusResponse(path=path, status=index_service.get_status(path))
