"""
Core module for smartcal
Contains configuration, errors, time helpers, models and event stores
"""

from .config import Config
from .errors import (
    SmartCalError,
    CollaboratorUnavailableError,
    EventStoreUnavailableError,
    RemoteProviderUnavailableError,
    NotAuthenticatedError,
    SyncInProgressError,
    RemoteRequestError,
)
from .models import (
    CalendarEvent,
    Intent,
    Location,
    Recurrence,
    Reminder,
    SideEffect,
    SyncResult,
    TimeSlot,
)
from .store import EventStore, InMemoryEventStore, SQLiteEventStore

__all__ = [
    'Config',
    'SmartCalError',
    'CollaboratorUnavailableError',
    'EventStoreUnavailableError',
    'RemoteProviderUnavailableError',
    'NotAuthenticatedError',
    'SyncInProgressError',
    'RemoteRequestError',
    'CalendarEvent',
    'Intent',
    'Location',
    'Recurrence',
    'Reminder',
    'SideEffect',
    'SyncResult',
    'TimeSlot',
    'EventStore',
    'InMemoryEventStore',
    'SQLiteEventStore',
]
