"""Webhook router for vault document lifecycle events.

The vault watcher calls POST /webhook/document whenever a document is
created, modified or deleted. The handler updates the index for that
single document so the collection stays current without a full reindex.
"""

import asyncio

from fastapi import APIRouter, Depends, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import DocumentEventRequest
from server.models.responses import AcceptedResponse

router = APIRouter()


@router.post(
    "/webhook/document",
    dependencies=[Depends(verify_api_key)],
    tags=["Webhook"],
    response_model=AcceptedResponse,
)
async def handle_document_webhook(request: Request, body: DocumentEventRequest) -> AcceptedResponse:
    """Handle a document created / modified / deleted event.

    The index update runs as a fire-and-forget background task so the
    response is returned immediately.

    Args:
        request (Request): The incoming request (carries app state).
        body (DocumentEventRequest): The affected path and the event kind.

    Returns:
        AcceptedResponse: Acknowledgement with the received path.
    """
    request.app.state.logging.info("Webhook received: %s '%s'", body.event.value, body.path)

    index_service = request.app.state.index_service
    task = asyncio.create_task(index_service.on_event(body.event, body.path))
    # keep a reference until the task is done
    background_tasks: set = request.app.state.background_tasks
    background_tasks.add(task)
    task.add_done_callback(background_tasks.discard)

    return AcceptedResponse(path=body.path)
