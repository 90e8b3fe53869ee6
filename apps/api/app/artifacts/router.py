"""Dashboard endpoints: load, browse, and delete GitHub Actions artifacts.

All routes act on the signed-in user's workspace (see
`app.artifacts.workspace`). A load runs in the background after the 202
response; the dashboard polls ``/dashboard/repositories`` or follows
``/dashboard/log/stream`` to watch it progress.

Rate limiting: the two purge endpoints are throttled per GitHub login via
SlowAPI (``delete_rate_limit``, default 10/minute).
"""

import json
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse

from app.artifacts.aggregator import load_all
from app.artifacts.deletion import delete_many, delete_one, delete_selected
from app.artifacts.schemas import (
    BulkDeletionResponse,
    DeleteArtifactResponse,
    LoadResponse,
    LogEntryResponse,
    LogResponse,
    PurgeRequest,
    RepositoryDeletionResponse,
    RepositoryDetail,
    RepositoryListResponse,
    RepositorySummary,
    SelectionRequest,
    SelectionResponse,
)
from app.artifacts.types import DeleteOutcome, DeletionInProgressError, LogEntry
from app.artifacts.workspace import Workspace
from app.auth.dependencies import get_current_user
from app.auth.session import SessionUser
from app.core.config import Settings, get_settings
from app.core.limiter import limiter

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

# Seconds between SSE heartbeats while a load or deletion is running.
STREAM_HEARTBEAT_SECONDS = 5.0


def get_workspace(
    request: Request,
    user: SessionUser = Depends(get_current_user),
) -> Workspace:
    return request.app.state.workspaces.get_or_create(user.login)


def _get_repository_or_404(workspace: Workspace, repository_id: int):
    repository = workspace.store.get(repository_id)
    if repository is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Repository not found")
    return repository


# ---------------------------------------------------------------------------
# Loading and browsing
# ---------------------------------------------------------------------------


@router.post("/load", response_model=LoadResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_load(
    background_tasks: BackgroundTasks,
    user: SessionUser = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
    app_settings: Settings = Depends(get_settings),
) -> LoadResponse:
    """(Re)load repositories and artifacts from GitHub in the background."""
    if workspace.loading:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A load is already running")
    if workspace.deleting:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="A deletion is running")

    # Claimed here so a second request cannot slip in before the task starts.
    workspace.loading = True
    background_tasks.add_task(load_all, workspace, user.access_token, app_settings)
    logger.info("Load scheduled for %s", user.login)
    return LoadResponse(started=True)


@router.get("/repositories", response_model=RepositoryListResponse)
async def list_repositories(
    hide_empty: bool = True,
    workspace: Workspace = Depends(get_workspace),
) -> RepositoryListResponse:
    """Repositories in GitHub's order (most recently updated first).

    Repositories without artifacts are hidden unless ``hide_empty=false``.
    """
    repositories = workspace.store.all()
    if hide_empty:
        repositories = [r for r in repositories if r.artifact_count > 0]
    return RepositoryListResponse(
        repositories=[RepositorySummary.from_repository(r) for r in repositories],
        count=len(repositories),
        loading=workspace.loading,
        deleting=workspace.deleting,
        selected=workspace.selection,
    )


@router.get("/repositories/{repository_id}", response_model=RepositoryDetail)
async def get_repository(
    repository_id: int,
    workspace: Workspace = Depends(get_workspace),
) -> RepositoryDetail:
    return RepositoryDetail.from_repository(_get_repository_or_404(workspace, repository_id))


# ---------------------------------------------------------------------------
# Deletion
# ---------------------------------------------------------------------------


@router.delete(
    "/repositories/{repository_id}/artifacts/{artifact_id}",
    response_model=DeleteArtifactResponse,
)
async def delete_artifact(
    repository_id: int,
    artifact_id: int,
    user: SessionUser = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
) -> DeleteArtifactResponse:
    """Delete one artifact. GitHub failures surface as 502; nothing is retried."""
    outcome = await delete_one(workspace, user.access_token, repository_id, artifact_id)

    if outcome is DeleteOutcome.NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Artifact not found")
    if outcome is DeleteOutcome.FAILED:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="GitHub refused to delete the artifact",
        )

    repository = workspace.store.get(repository_id)
    return DeleteArtifactResponse(
        repository_id=repository_id,
        artifact_id=artifact_id,
        outcome=outcome,
        repository=RepositorySummary.from_repository(repository) if repository else None,
    )


@router.post(
    "/repositories/{repository_id}/purge",
    response_model=RepositoryDeletionResponse,
)
@limiter.limit(settings.delete_rate_limit)
async def purge_repository(
    request: Request,
    repository_id: int,
    body: PurgeRequest = PurgeRequest(),
    user: SessionUser = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
) -> RepositoryDeletionResponse:
    """Delete all (or all but the newest) artifacts of one repository."""
    _get_repository_or_404(workspace, repository_id)

    try:
        with workspace.deletion_guard():
            result = await delete_many(workspace, user.access_token, repository_id, body.policy)
    except DeletionInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Repository not found")
    return RepositoryDeletionResponse.from_result(result)


@router.put("/selection", response_model=SelectionResponse)
async def set_selection(
    body: SelectionRequest,
    workspace: Workspace = Depends(get_workspace),
) -> SelectionResponse:
    """Replace the set of selected repositories. Unknown ids are ignored."""
    return SelectionResponse(selected=workspace.select(body.repository_ids))


@router.post("/selection/purge", response_model=BulkDeletionResponse)
@limiter.limit(settings.delete_rate_limit)
async def purge_selection(
    request: Request,
    body: PurgeRequest = PurgeRequest(),
    user: SessionUser = Depends(get_current_user),
    workspace: Workspace = Depends(get_workspace),
) -> BulkDeletionResponse:
    """Purge every selected repository, one after another, then clear the selection."""
    try:
        results = await delete_selected(workspace, user.access_token, body.policy)
    except DeletionInProgressError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    return BulkDeletionResponse(
        results=[RepositoryDeletionResponse.from_result(r) for r in results],
        deleted_count=sum(len(r.deleted) for r in results),
        failed_count=sum(len(r.failed) for r in results),
    )


# ---------------------------------------------------------------------------
# Activity log
# ---------------------------------------------------------------------------


@router.get("/log", response_model=LogResponse)
async def get_log(
    after: int = 0,
    workspace: Workspace = Depends(get_workspace),
) -> LogResponse:
    """Activity log entries newer than *after*, newest first."""
    entries = [e for e in workspace.log.entries() if e.id > after]
    return LogResponse(
        entries=[LogEntryResponse.from_entry(e) for e in entries],
        count=len(entries),
    )


def _format_event(entry: LogEntry) -> str:
    data = LogEntryResponse.from_entry(entry).model_dump(mode="json")
    return f"id: {entry.id}\nevent: log\ndata: {json.dumps(data)}\n\n"


@router.get("/log/stream")
async def stream_log(
    request: Request,
    after: int = 0,
    workspace: Workspace = Depends(get_workspace),
):
    """Stream activity log entries via Server-Sent Events.

    Sends the backlog after *after* (or the ``Last-Event-ID`` header on
    reconnect), then follows new entries while a load or deletion is
    running, with heartbeat comments in between. Ends with ``event: done``
    once the workspace is idle.
    """
    last_event_id = request.headers.get("Last-Event-ID", "")
    cursor = int(last_event_id) if last_event_id.isdigit() else after

    async def _generate():
        nonlocal cursor
        heartbeat_count = 0

        while True:
            if await request.is_disconnected():
                break

            entries = workspace.log.since(cursor)
            if entries:
                for entry in entries:
                    cursor = entry.id
                    yield _format_event(entry)
                continue

            if not workspace.busy:
                yield "event: done\ndata: {}\n\n"
                break

            if not await workspace.log.wait_for_entries(cursor, STREAM_HEARTBEAT_SECONDS):
                heartbeat_count += 1
                yield f": heartbeat {heartbeat_count}\n\n"

    return StreamingResponse(
        _generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
