"""
Sync Reconciler: pushes local events to a remote calendar provider and
imports remote events.

A reconciliation pass lists the remote calendar once, then walks the local
events in input order. Each event is updated remotely when its remote id is
known to the provider and created otherwise; a create binds the returned
remote id onto the local event in place. Items succeed or fail independently:
a failure is recorded in SyncResult.errors and the pass continues. Nothing is
rolled back.

Failure to list the remote calendar aborts the pass with the provider's
exception (RemoteProviderUnavailableError or NotAuthenticatedError). A
NotAuthenticatedError on any later call aborts the pass as well: it is not
retryable, so the remaining items are not attempted. Remote ids bound before
the failure stay bound on the local events.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple
import logging
import threading

from ..core.errors import CollaboratorUnavailableError, NotAuthenticatedError, SyncInProgressError
from ..core.models import CalendarEvent, SyncResult
from ..core.timeutils import as_aware, overlaps, resolve_timezone
from ..scheduling.availability import event_interval
from .tombstones import TombstoneLedger
from .translation import from_remote_event, to_remote_event

logger = logging.getLogger(__name__)

DateRange = Tuple[datetime, datetime]


class RemoteCalendarProvider(ABC):
    """Remote calendar collaborator (wire shape: Google Calendar event resources)"""

    @abstractmethod
    def list_events(self, calendar_id: str, time_min: Optional[datetime] = None,
                    time_max: Optional[datetime] = None) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    def create_event(self, calendar_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Create an event; the returned resource carries the new remote id"""
        pass

    @abstractmethod
    def update_event(self, calendar_id: str, event_id: str,
                     body: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    def delete_event(self, calendar_id: str, event_id: str) -> None:
        pass


def _in_range(event: CalendarEvent, date_range: Optional[DateRange], tz) -> bool:
    if date_range is None:
        return True
    range_start, range_end = (as_aware(d, tz) for d in date_range)
    start, end = event_interval(event, tz)
    start = as_aware(start, tz)
    if range_start <= start < range_end:
        return True
    return overlaps(start, end, range_start, range_end, tz)


def import_events(remote_events: Iterable[Dict[str, Any]],
                  date_range: Optional[DateRange] = None,
                  tz_name: str = "UTC",
                  tombstones: Optional[TombstoneLedger] = None) -> List[CalendarEvent]:
    """
    Convert remote event resources to local events.

    Cancelled and tombstoned remote events are skipped, as are events outside
    date_range when one is given.

    Args:
        remote_events: Event resources as returned by the provider
        date_range: Optional (start, end) window
        tz_name: Timezone all-day dates are anchored in
        tombstones: Remote ids deleted locally that must not come back

    Returns:
        Local events with remote_id set, in provider order
    """
    tz = resolve_timezone(tz_name)
    imported = []
    for item in remote_events:
        if item.get("status") == "cancelled":
            continue
        if tombstones is not None and item.get("id") in tombstones:
            logger.debug(f"Skipping tombstoned remote event {item.get('id')}")
            continue
        event = from_remote_event(item, tz_name)
        if event is None or not _in_range(event, date_range, tz):
            continue
        imported.append(event)
    logger.info(f"Imported {len(imported)} remote events")
    return imported


class SyncReconciler:
    """
    Reconciles local events with one remote calendar.

    Only one pass may run at a time per reconciler; a concurrent call raises
    SyncInProgressError.
    """

    def __init__(self, provider: RemoteCalendarProvider,
                 calendar_id: str = "primary",
                 tz_name: str = "UTC",
                 tombstones: Optional[TombstoneLedger] = None):
        self.provider = provider
        self.calendar_id = calendar_id
        self.tz_name = tz_name
        self.tombstones = tombstones if tombstones is not None else TombstoneLedger()
        self._in_flight = threading.Lock()

    def reconcile(self, local_events: List[CalendarEvent],
                  cancel_event: Optional[threading.Event] = None) -> SyncResult:
        """
        Push local events to the remote calendar.

        Args:
            local_events: Events to push; remote_id is bound in place on create
            cancel_event: Checked between items; when set the pass stops early
                and returns the partial result with cancelled=True

        Returns:
            SyncResult with counts, per-item errors and new bindings

        Raises:
            SyncInProgressError: another pass is running
            RemoteProviderUnavailableError: listing failed
            NotAuthenticatedError: listing or any later call was refused
        """
        if not self._in_flight.acquire(blocking=False):
            raise SyncInProgressError("A sync pass is already running")
        try:
            remote = self.provider.list_events(self.calendar_id)
            lookup = {item["id"]: item for item in remote if item.get("id")}
            logger.info(f"Reconciling {len(local_events)} local events against "
                        f"{len(lookup)} remote events")

            result = SyncResult()
            for event in local_events:
                if cancel_event is not None and cancel_event.is_set():
                    result.cancelled = True
                    break
                self._push_one(event, lookup, result)

            if not result.cancelled:
                self._apply_tombstones(lookup, result, cancel_event)

            if result.cancelled:
                logger.warning(f"Sync cancelled: {result.to_dict()}")
            else:
                logger.info(f"Sync finished: created={result.created} updated={result.updated} "
                            f"deleted={result.deleted} errors={len(result.errors)}")
            return result
        finally:
            self._in_flight.release()

    def _push_one(self, event: CalendarEvent, lookup: Dict[str, Dict[str, Any]],
                  result: SyncResult) -> None:
        try:
            body = to_remote_event(event, self.tz_name)
            if event.remote_id and event.remote_id in lookup:
                self.provider.update_event(self.calendar_id, event.remote_id, body)
                result.updated += 1
            else:
                created = self.provider.create_event(self.calendar_id, body)
                event.remote_id = created["id"]
                if event.id is not None:
                    result.bound[event.id] = created["id"]
                result.created += 1
        except NotAuthenticatedError:
            logger.error(f"Not authenticated while syncing event {event.id}; aborting pass")
            raise
        except Exception as e:
            logger.error(f"Failed to sync event {event.id}: {e}")
            result.errors.append(f'sync failed for "{event.title}": {e}')

    def _apply_tombstones(self, lookup: Dict[str, Dict[str, Any]], result: SyncResult,
                          cancel_event: Optional[threading.Event]) -> None:
        """Delete remotely the events that were deleted locally after a sync."""
        for remote_id in list(self.tombstones):
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                return
            if remote_id not in lookup:
                # Already gone remotely
                self.tombstones.discard(remote_id)
                continue
            title = lookup[remote_id].get("summary", remote_id)
            try:
                self.provider.delete_event(self.calendar_id, remote_id)
            except NotAuthenticatedError:
                raise
            except Exception as e:
                logger.error(f"Failed to delete remote event {remote_id}: {e}")
                result.errors.append(f'delete failed for "{title}": {e}')
                continue
            self.tombstones.discard(remote_id)
            result.deleted += 1

    def import_events(self, remote_events: Iterable[Dict[str, Any]],
                      date_range: Optional[DateRange] = None) -> List[CalendarEvent]:
        return import_events(remote_events, date_range, self.tz_name, self.tombstones)

    def pull(self, date_range: Optional[DateRange] = None) -> List[CalendarEvent]:
        """List the remote calendar (optionally windowed) and import it."""
        time_min, time_max = date_range if date_range else (None, None)
        remote = self.provider.list_events(self.calendar_id, time_min, time_max)
        return self.import_events(remote, date_range)


def push_store(reconciler: SyncReconciler, store,
               cancel_event: Optional[threading.Event] = None) -> SyncResult:
    """Reconcile every stored event and persist the new remote id bindings."""
    events = store.query()
    known = {event.id: event.remote_id for event in events}
    try:
        result = reconciler.reconcile(events, cancel_event)
    except CollaboratorUnavailableError:
        # Creates issued before the failure exist remotely
        _store_bindings(store, events, known)
        raise
    _store_bindings(store, events, known)
    return result


def _store_bindings(store, events: List[CalendarEvent],
                    known: Dict[Optional[str], Optional[str]]) -> None:
    for event in events:
        if event.remote_id and event.remote_id != known.get(event.id):
            store.update(event.id, {"remote_id": event.remote_id})


def pull_into_store(reconciler: SyncReconciler, store,
                    date_range: Optional[DateRange] = None) -> List[CalendarEvent]:
    """Import remote events not yet present locally; returns the stored ones."""
    known = {e.remote_id for e in store.query() if e.remote_id}
    stored = []
    for event in reconciler.pull(date_range):
        if event.remote_id in known:
            continue
        stored.append(store.create(event))
        known.add(event.remote_id)
    return stored
