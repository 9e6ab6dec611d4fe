"""
Remote calendar synchronization: reconciliation, translation and tombstones
"""

from .reconciler import (
    RemoteCalendarProvider,
    SyncReconciler,
    import_events,
    pull_into_store,
    push_store,
)
from .tombstones import TombstoneLedger
from .translation import from_remote_event, recurrence_rules, to_remote_event

__all__ = [
    'RemoteCalendarProvider',
    'SyncReconciler',
    'import_events',
    'pull_into_store',
    'push_store',
    'TombstoneLedger',
    'from_remote_event',
    'recurrence_rules',
    'to_remote_event',
]
