"""
smartcal FastAPI Backend

Exposes the calendar agent, free-slot lookup and Google sync over HTTP.

Architecture:
- FastAPI handles HTTP routing and request/response validation
- Pydantic schemas ensure type safety
- CalendarAgent and SyncReconciler hold all business logic
- The Event Store provides persistence via SQLite

Run with:
    uvicorn backend.main:app --reload --port 8000

Or:
    python -m backend.main
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.dependencies import get_config, get_store
from backend.routers import assistant_router, events_router, sync_router
from smartcal import __version__
from smartcal.core.errors import (
    CollaboratorUnavailableError,
    NotAuthenticatedError,
    RemoteRequestError,
    SyncInProgressError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup: open the event store so a broken database path fails loudly.
    """
    try:
        config = get_config()
        store = get_store()
        logger.info(f"Event store ready: {store.db_path}")
        logger.info(f"Config loaded from: {config.config_dir}")
    except CollaboratorUnavailableError as e:
        # Allow app to start; endpoints answer 503 until the store is reachable
        logger.error(f"Event store unavailable at startup: {e}")

    yield

    logger.info("Shutting down...")


app = FastAPI(
    title="smartcal API",
    description="""
    Natural-language calendar assistant.

    ## Features

    - **Assistant**: Create, query, move and delete events from free text
    - **Events**: List events and find free slots in the work day
    - **Sync**: Push to and pull from Google Calendar

    ## Natural Language Examples

    - "create team meeting tomorrow at 14:00 in Room 4"
    - "view today"
    - "when am I free?"
    - "delete Dentist"
    """,
    version=__version__,
    lifespan=lifespan,
)

# In production, replace with specific origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",  # Vite dev server
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(assistant_router)
app.include_router(events_router)
app.include_router(sync_router)


# ============================================================
# ERROR MAPPING
# ============================================================
# Collaborator failures are the only exceptions the core raises;
# everything else is already a readable agent response.
# ============================================================

@app.exception_handler(NotAuthenticatedError)
async def not_authenticated_handler(request: Request, exc: NotAuthenticatedError):
    return JSONResponse(status_code=401, content={"detail": str(exc), "code": "not_authenticated"})


@app.exception_handler(CollaboratorUnavailableError)
async def unavailable_handler(request: Request, exc: CollaboratorUnavailableError):
    return JSONResponse(status_code=503, content={"detail": str(exc), "code": "unavailable"})


@app.exception_handler(SyncInProgressError)
async def sync_in_progress_handler(request: Request, exc: SyncInProgressError):
    return JSONResponse(status_code=409, content={"detail": str(exc), "code": "sync_in_progress"})


@app.exception_handler(RemoteRequestError)
async def remote_request_handler(request: Request, exc: RemoteRequestError):
    return JSONResponse(status_code=502, content={"detail": str(exc), "code": "remote_rejected"})


@app.get("/")
async def root():
    """API root - returns basic info and available endpoints."""
    return {
        "name": "smartcal API",
        "version": __version__,
        "docs": "/docs",
        "endpoints": {
            "assistant": "/assistant/ask",
            "events": "/events",
            "free_slots": "/events/free-slots/",
            "sync": "/sync/push",
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring."""
    try:
        get_store().query()
        return {"status": "healthy", "database": "connected"}
    except CollaboratorUnavailableError as e:
        return {"status": "unhealthy", "error": str(e)}


# Allow running directly with: python -m backend.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "backend.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
