"""
Google Calendar provider for smartcal.

Implements RemoteCalendarProvider on top of the Google Calendar v3 API.
Credentials are read from token.json in the credentials directory; the
interactive OAuth flow only runs when explicitly requested (CLI `login`).

Error mapping:
- missing/invalid credentials, HTTP 401/403 -> NotAuthenticatedError
- HTTP 5xx, 429 and transport failures     -> RemoteProviderUnavailableError
- any other HTTP error (400, 404, 409 ...)  -> RemoteRequestError
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from google.auth.exceptions import GoogleAuthError, RefreshError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ...core.errors import (
    NotAuthenticatedError,
    RemoteProviderUnavailableError,
    RemoteRequestError,
)
from ...sync.reconciler import RemoteCalendarProvider

logger = logging.getLogger(__name__)

# If modifying these scopes, delete the file token.json
SCOPES = ['https://www.googleapis.com/auth/calendar']

PAGE_SIZE = 250


def _rfc3339(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class GoogleCalendarProvider(RemoteCalendarProvider):
    """
    Remote calendar provider backed by Google Calendar.

    Args:
        credentials_dir: Directory holding credentials.json and token.json
        service: Prebuilt API service (tests inject a MagicMock here)
    """

    def __init__(self, credentials_dir: Path, service: Any = None):
        self.credentials_dir = Path(credentials_dir)
        self.credentials_file = self.credentials_dir / "credentials.json"
        self.token_file = self.credentials_dir / "token.json"
        self.service = service

    def authenticate(self, interactive: bool = False) -> None:
        """
        Build the API service from stored credentials.

        Args:
            interactive: Run the browser OAuth flow when no usable token exists

        Raises:
            NotAuthenticatedError: no valid credentials could be obtained
        """
        creds = None

        if self.token_file.exists():
            try:
                creds = Credentials.from_authorized_user_file(str(self.token_file), SCOPES)
                logger.info("Loaded existing credentials from token.json")
            except ValueError as e:
                logger.warning(f"Failed to load token.json: {e}")

        if creds and not creds.valid and creds.expired and creds.refresh_token:
            try:
                creds.refresh(Request())
                logger.info("Refreshed expired credentials")
            except RefreshError as e:
                logger.error(f"Failed to refresh credentials: {e}")
                creds = None

        if not creds or not creds.valid:
            if not interactive:
                raise NotAuthenticatedError(
                    f"No valid Google credentials in {self.credentials_dir}; run `smartcal login`")
            if not self.credentials_file.exists():
                raise NotAuthenticatedError(f"Credentials file not found: {self.credentials_file}")
            try:
                flow = InstalledAppFlow.from_client_secrets_file(str(self.credentials_file), SCOPES)
                creds = flow.run_local_server(port=0)
                logger.info("Completed OAuth flow, obtained new credentials")
            except (GoogleAuthError, ValueError) as e:
                raise NotAuthenticatedError(f"OAuth flow failed: {e}") from e

        self.credentials_dir.mkdir(parents=True, exist_ok=True)
        with open(self.token_file, 'w') as token:
            token.write(creds.to_json())
        logger.info(f"Saved credentials to {self.token_file}")

        self.service = build('calendar', 'v3', credentials=creds, cache_discovery=False)
        logger.info("Successfully built Google Calendar service")

    def _events(self):
        if self.service is None:
            self.authenticate()
        return self.service.events()

    def _execute(self, request, action: str) -> Any:
        try:
            return request.execute()
        except HttpError as e:
            status = e.resp.status
            logger.error(f"HTTP {status} while trying to {action}: {e}")
            if status in (401, 403):
                raise NotAuthenticatedError(f"Google Calendar refused access ({status})") from e
            if status == 429 or status >= 500:
                raise RemoteProviderUnavailableError(
                    f"Google Calendar unavailable ({status})") from e
            raise RemoteRequestError(f"Google Calendar rejected request ({status})") from e
        except RefreshError as e:
            raise NotAuthenticatedError(f"Credentials expired: {e}") from e
        except OSError as e:
            logger.error(f"Network error while trying to {action}: {e}")
            raise RemoteProviderUnavailableError(f"Cannot reach Google Calendar: {e}") from e

    def list_events(self, calendar_id: str = 'primary',
                    time_min: Optional[datetime] = None,
                    time_max: Optional[datetime] = None) -> List[Dict[str, Any]]:
        """
        List all events of a calendar, following pagination.

        Recurring events are returned as their master resources so they can be
        matched against local recurrence rules.
        """
        params: Dict[str, Any] = {
            'calendarId': calendar_id,
            'maxResults': PAGE_SIZE,
            'showDeleted': False,
        }
        if time_min:
            params['timeMin'] = _rfc3339(time_min)
        if time_max:
            params['timeMax'] = _rfc3339(time_max)

        events: List[Dict[str, Any]] = []
        page_token = None
        while True:
            if page_token:
                params['pageToken'] = page_token
            page = self._execute(self._events().list(**params), "list events")
            events.extend(page.get('items', []))
            page_token = page.get('nextPageToken')
            if not page_token:
                break

        logger.info(f"Retrieved {len(events)} events from {calendar_id}")
        return events

    def create_event(self, calendar_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        created = self._execute(
            self._events().insert(calendarId=calendar_id, body=body), "create event")
        logger.info(f"Created event: {created.get('summary')} ({created.get('id')})")
        return created

    def update_event(self, calendar_id: str, event_id: str,
                     body: Dict[str, Any]) -> Dict[str, Any]:
        updated = self._execute(
            self._events().update(calendarId=calendar_id, eventId=event_id, body=body),
            "update event")
        logger.info(f"Updated event: {updated.get('summary')}")
        return updated

    def delete_event(self, calendar_id: str, event_id: str) -> None:
        self._execute(
            self._events().delete(calendarId=calendar_id, eventId=event_id), "delete event")
        logger.info(f"Deleted event: {event_id}")
