"""
Scheduling helpers: conflict detection and free-slot discovery
"""

from .availability import (
    event_interval,
    find_conflict,
    find_conflicts,
    find_available_slots,
    events_on_day,
    busy_minutes,
)

__all__ = [
    'event_interval',
    'find_conflict',
    'find_conflicts',
    'find_available_slots',
    'events_on_day',
    'busy_minutes',
]
