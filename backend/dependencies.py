"""
Dependency injection for FastAPI endpoints.

Provides singleton instances of Config, the Event Store, the tombstone ledger
and the SyncReconciler. Tests swap any of them via app.dependency_overrides.

The reconciler is a singleton on purpose: its in-flight guard is what keeps
two sync requests from pushing the same unsynced event twice.
"""

from functools import lru_cache

from fastapi import Depends

from smartcal.agents import CalendarAgent
from smartcal.core import Config, EventStore, SQLiteEventStore
from smartcal.sync import SyncReconciler, TombstoneLedger


@lru_cache()
def get_config() -> Config:
    """
    Get cached Config instance.

    lru_cache ensures we only create one Config instance
    for the lifetime of the application.
    """
    return Config()


@lru_cache()
def get_store() -> EventStore:
    """Get the SQLite Event Store, creating its table on first use."""
    store = SQLiteEventStore(get_config().get_database_path())
    store.initialize()
    return store


@lru_cache()
def get_tombstones() -> TombstoneLedger:
    return TombstoneLedger(get_config().get_tombstones_path())


@lru_cache()
def get_reconciler() -> SyncReconciler:
    """Get the Google-backed reconciler (google libraries imported lazily)."""
    from smartcal.integrations.google_calendar import GoogleCalendarProvider

    config = get_config()
    return SyncReconciler(
        GoogleCalendarProvider(config.get_credentials_dir()),
        calendar_id=config.get("calendar_id", default="primary"),
        tz_name=config.get("timezone", default="UTC"),
        tombstones=get_tombstones(),
    )


def get_calendar_agent(
    store: EventStore = Depends(get_store),
    config: Config = Depends(get_config),
    tombstones: TombstoneLedger = Depends(get_tombstones),
) -> CalendarAgent:
    """
    Get CalendarAgent for natural language commands.

    Creates a new agent per request but shares the store, config and
    tombstone singletons.
    """
    return CalendarAgent(store, config, tombstones=tombstones)
