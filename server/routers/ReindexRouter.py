"""Reindex router: trigger and observe full reindex runs."""

import asyncio

from fastapi import APIRouter, Depends, HTTPException, Request

from server.dependencies.auth import verify_api_key
from server.models.requests import ReindexRequest
from server.models.responses import AcceptedResponse, ReindexStatusResponse

router = APIRouter()


async def _run_reindex(state, prune_orphans: bool) -> None:
    try:
        await state.reindex_service.reindex_from_source(prune_orphans=prune_orphans)
    except Exception:
        state.logging.exception("Full reindex failed.")


@router.post(
    "/reindex",
    dependencies=[Depends(verify_api_key)],
    tags=["Reindex"],
    response_model=AcceptedResponse,
    status_code=202,
)
async def handle_reindex(request: Request, body: ReindexRequest | None = None) -> AcceptedResponse:
    """Start a full reindex of the vault in the background.

    Raises:
        HTTPException: 409 if a reindex is already running.
    """
    reindex_service = request.app.state.reindex_service
    if reindex_service.is_running():
        raise HTTPException(status_code=409, detail="A reindex is already running.")

    prune_orphans = body.prune_orphans if body else False
    request.app.state.logging.info("Full reindex requested (prune_orphans=%s).", prune_orphans)
    task = asyncio.create_task(_run_reindex(request.app.state, prune_orphans))
    background_tasks: set = request.app.state.background_tasks
    background_tasks.add(task)
    task.add_done_callback(background_tasks.discard)
    return AcceptedResponse()


@router.get(
    "/reindex",
    dependencies=[Depends(verify_api_key)],
    tags=["Reindex"],
    response_model=ReindexStatusResponse,
)
async def handle_reindex_status(request: Request) -> ReindexStatusResponse:
    """Return whether a reindex is running, the last report and recent notifications."""
    reindex_service = request.app.state.reindex_service
    memory_sink = request.app.state.notification_memory
    return ReindexStatusResponse(
        running=reindex_service.is_running(),
        last_report=reindex_service.get_last_report(),
        notifications=memory_sink.get_messages(),
    )
