"""
Calendar event read endpoints: listing and free-slot lookup.

Events are created, changed and deleted through /assistant/ask so every
mutation passes the same conflict gate.
"""

from datetime import date, datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from backend.dependencies import get_config, get_store
from backend.schemas import EventListResponse, EventResponse, FreeSlotsResponse
from smartcal.core import Config, EventStore
from smartcal.core.models import CATEGORIES
from smartcal.core.timeutils import day_bounds, resolve_timezone
from smartcal.scheduling import find_available_slots

router = APIRouter(prefix="/events", tags=["events"])


@router.get("/", response_model=EventListResponse)
async def list_events(
    days_ahead: int = Query(7, ge=1, le=365, description="Days ahead to fetch"),
    category: Optional[str] = Query(None, description="Filter by category"),
    store: EventStore = Depends(get_store),
    config: Config = Depends(get_config),
):
    """
    List upcoming calendar events.

    By default, returns events from the start of today for the next 7 days.
    """
    if category is not None and category not in CATEGORIES:
        raise HTTPException(status_code=400, detail=f"Unknown category: {category}")

    tz = resolve_timezone(config.get("timezone", default="UTC"))
    start, _ = day_bounds(datetime.now(tz).date(), tz)
    events = store.query(start, start + timedelta(days=days_ahead))
    if category:
        events = [e for e in events if e.category == category]

    return EventListResponse(
        events=[EventResponse(**e.to_dict()) for e in events],
        total=len(events),
    )


@router.get("/free-slots/", response_model=FreeSlotsResponse)
async def free_slots(
    day: Optional[date] = Query(None, alias="date", description="Day to inspect (default: today)"),
    duration: Optional[int] = Query(None, ge=5, le=480, description="Slot length in minutes"),
    store: EventStore = Depends(get_store),
    config: Config = Depends(get_config),
):
    """Free fixed-length slots inside the configured work hours."""
    tz = resolve_timezone(config.get("timezone", default="UTC"))
    day = day or datetime.now(tz).date()
    work_start, work_end = config.get_work_hours()
    slot_minutes = duration or int(config.get("slot_minutes", section="preferences", default=60))

    start, end = day_bounds(day, tz)
    slots = find_available_slots(day, store.query(start, end), work_start, work_end,
                                 slot_minutes, tz)
    return FreeSlotsResponse(
        date=day.isoformat(),
        slots=[s.to_dict() for s in slots],
        count=len(slots),
    )


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: str,
    store: EventStore = Depends(get_store),
):
    """Get a single event by ID."""
    event = store.get(event_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return EventResponse(**event.to_dict())
