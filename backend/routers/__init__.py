"""
API routers for the smartcal backend.

Each router handles a specific area:
- assistant: Free-text commands through the CalendarAgent
- events: Event listing and free-slot lookup
- sync: Google Calendar push/pull
"""

from .assistant import router as assistant_router
from .events import router as events_router
from .sync import router as sync_router

__all__ = [
    'assistant_router',
    'events_router',
    'sync_router',
]
