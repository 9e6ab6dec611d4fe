"""
Google Calendar synchronization endpoints.

push runs one reconciliation pass over the whole local store; pull imports
remote events for the coming days. A second push while one is running is
refused with 409, authentication problems map to 401 and an unreachable
provider to 503 (see exception handlers in main).
"""

from datetime import datetime, timedelta

from fastapi import APIRouter, Depends

from backend.dependencies import get_config, get_reconciler, get_store
from backend.schemas import EventResponse, PullRequest, PullResponse, SyncResultResponse
from smartcal.core import Config, EventStore
from smartcal.core.timeutils import day_bounds, resolve_timezone
from smartcal.sync import SyncReconciler, pull_into_store, push_store

router = APIRouter(prefix="/sync", tags=["sync"])


@router.post("/push", response_model=SyncResultResponse)
def push_events(
    reconciler: SyncReconciler = Depends(get_reconciler),
    store: EventStore = Depends(get_store),
):
    """
    Push local events to the remote calendar.

    Per-event failures are listed in `errors`; the pass itself still
    returns 200.
    """
    result = push_store(reconciler, store)
    return SyncResultResponse(**result.to_dict())


@router.post("/pull", response_model=PullResponse)
def pull_events(
    request: PullRequest,
    reconciler: SyncReconciler = Depends(get_reconciler),
    store: EventStore = Depends(get_store),
    config: Config = Depends(get_config),
):
    """Import remote events not yet present locally."""
    tz = resolve_timezone(config.get("timezone", default="UTC"))
    start, _ = day_bounds(datetime.now(tz).date(), tz)
    stored = pull_into_store(reconciler, store, (start, start + timedelta(days=request.days)))
    return PullResponse(
        imported=[EventResponse(**e.to_dict()) for e in stored],
        total=len(stored),
    )
