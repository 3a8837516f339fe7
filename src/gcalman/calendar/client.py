"""Google Calendar API client implementation."""

from __future__ import annotations

import contextlib
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from googleapiclient.errors import HttpError

from gcalman.calendar.exceptions import CalendarAPIError
from gcalman.config import get_calendar_id
from gcalman.google import GoogleOAuth
from gcalman.google.exceptions import AuthorizationRequired, GoogleAuthError

logger = logging.getLogger(__name__)


@dataclass
class GcalEvent:
    """Simplified event supplied by the caller.

    Times are ISO-8601 strings, e.g. "2022-03-31T10:45:26.371Z".
    """

    title: str
    start: str
    end: str
    description: str = ""
    attendee_emails: list[str] = field(default_factory=list)
    location: str = ""
    send_invites: bool = True
    accepted: bool = False
    use_default_reminders: bool = True
    add_conference: bool = True
    time_zone: str | None = None


@dataclass
class Event:
    """Represents a Google Calendar event."""

    id: str
    summary: str
    start: datetime | None = None
    end: datetime | None = None
    description: str | None = None
    location: str | None = None
    status: str = "confirmed"
    html_link: str | None = None
    hangout_link: str | None = None
    attendees: list[str] | None = None


@dataclass
class CreatedEvent:
    """What the API echoes back after an insert."""

    id: str
    html_link: str | None = None
    hangout_link: str | None = None


def _random_request_id(length: int = 16) -> str:
    return secrets.token_hex(length)[:length]


class CalendarClient:
    """Google Calendar API client with OAuth authentication.

    A narrow façade over the Calendar v3 service: list upcoming events,
    build an API event body from a ``GcalEvent``, and insert it.

    Usage:
        client = CalendarClient(
            credentials_path="credentials.json",
            token_path="token.json",
        )

        # Upcoming events
        for event in client.list_upcoming_events():
            print(event.summary, event.start)

        # Create an event with a Meet link
        created = client.create_event(
            GcalEvent(
                title="Meeting",
                start="2026-01-25T10:00:00Z",
                end="2026-01-25T11:00:00Z",
                attendee_emails=["someone@example.com"],
            )
        )
        print(created.html_link, created.hangout_link)

    Note:
        Requires a cached OAuth token. Run `gcalman auth login` or call
        ``authorize()`` once to create it.
    """

    def __init__(
        self,
        credentials_path: str | Path | None = None,
        token_path: str | Path | None = None,
        scopes: list[str] | None = None,
        calendar_id: str | None = None,
        service: Any = None,
    ) -> None:
        """Initialize Calendar client.

        Args:
            credentials_path: OAuth client secret file. Defaults to config.
            token_path: Cached OAuth token file. Defaults to config.
            scopes: OAuth scopes. Defaults to ["calendar"].
            calendar_id: Default calendar. Defaults to config, then "primary".
            service: Pre-built Calendar API service to use instead of OAuth.
        """
        self._credentials_path = credentials_path
        self._token_path = token_path
        self._scopes = scopes or ["calendar"]
        self.calendar_id = calendar_id or get_calendar_id()
        self._auth: GoogleOAuth | None = None
        self._service: Any = service

    def _new_auth(self) -> GoogleOAuth:
        return GoogleOAuth(
            scopes=self._scopes,
            token_path=self._token_path,
            credentials_path=self._credentials_path,
        )

    def _get_service(self) -> Any:
        """Get or create Calendar API service."""
        if self._service is None:
            self._auth = self._new_auth()
            if not self._auth.is_authorized():
                raise AuthorizationRequired(
                    self._auth.get_authorization_url(),
                    "Calendar API requires OAuth authorization. "
                    "Run 'gcalman auth login' to authorize.",
                )
            self._service = self._auth.build_service("calendar", "v3")
            logger.info("Calendar service initialized")
        return self._service

    def _resolve_calendar(self, calendar_id: str | None) -> str:
        return calendar_id or self.calendar_id or "primary"

    def authorize(
        self,
        prompt: Callable[[str], str] = input,
        open_browser: bool = False,
    ) -> bool:
        """Perform the interactive token bootstrap.

        Args:
            prompt: Reads the authorization code from the user.
            open_browser: Open the consent page in a browser.

        Returns:
            True if authorization successful.

        Raises:
            TokenError: If authorization fails.
        """
        self._auth = self._new_auth()
        self._auth.authorize(prompt=prompt, open_browser=open_browser)
        self._service = None  # Force service recreation
        return True

    def is_authorized(self) -> bool:
        """Check if client is authorized."""
        if self._service is not None:
            return True
        try:
            return self._new_auth().is_authorized()
        except (GoogleAuthError, OSError, ValueError, KeyError):
            return False

    # =========================================================================
    # Events
    # =========================================================================

    def list_upcoming_events(
        self,
        calendar_id: str | None = None,
        max_results: int = 10,
        time_min: datetime | str | None = None,
    ) -> list[Event]:
        """List the next events on a calendar, soonest first.

        Recurring events are expanded into instances; deleted events are
        skipped.

        Args:
            calendar_id: Calendar ID. Defaults to the client's calendar.
            max_results: Maximum number of events to return.
            time_min: Lower bound on event end time (defaults to now).

        Returns:
            List of Event objects, empty if nothing is upcoming.

        Raises:
            CalendarAPIError: If the API call fails.
        """
        service = self._get_service()

        if time_min is None:
            time_min = datetime.now(timezone.utc)

        try:
            results = (
                service.events()
                .list(
                    calendarId=self._resolve_calendar(calendar_id),
                    showDeleted=False,
                    singleEvents=True,
                    timeMin=self._format_datetime(time_min),
                    maxResults=max_results,
                    orderBy="startTime",
                )
                .execute()
            )
        except HttpError as e:
            raise CalendarAPIError(
                f"Unable to retrieve upcoming events: {e}", self._status_of(e)
            ) from e

        items = results.get("items", [])
        return [self._parse_event(item) for item in items]

    def build_event(self, event: GcalEvent) -> dict[str, Any]:
        """Translate a GcalEvent into a Calendar API event body.

        Args:
            event: The simplified event.

        Returns:
            Event resource dict, ready for ``insert_event``.
        """
        start: dict[str, Any] = {"dateTime": event.start}
        end: dict[str, Any] = {"dateTime": event.end}
        if event.time_zone:
            start["timeZone"] = event.time_zone
            end["timeZone"] = event.time_zone

        response_status = "accepted" if event.accepted else "needsAction"

        body: dict[str, Any] = {
            "summary": event.title,
            "start": start,
            "end": end,
            "attendees": [
                {"email": email, "responseStatus": response_status}
                for email in event.attendee_emails
            ],
            "reminders": {"useDefault": event.use_default_reminders},
        }

        if event.description:
            body["description"] = event.description
        if event.location:
            body["location"] = event.location
        if event.add_conference:
            body["conferenceData"] = {
                "createRequest": {
                    "requestId": _random_request_id(),
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                }
            }

        return body

    def insert_event(
        self,
        body: dict[str, Any],
        calendar_id: str | None = None,
        send_updates: str = "all",
    ) -> CreatedEvent:
        """Insert an event body into a calendar.

        Args:
            body: Event resource, usually from ``build_event``.
            calendar_id: Calendar ID. Defaults to the client's calendar.
            send_updates: "all", "externalOnly" or "none".

        Returns:
            CreatedEvent with the id and links Google assigned.

        Raises:
            CalendarAPIError: If the API call fails.
        """
        service = self._get_service()

        try:
            result = (
                service.events()
                .insert(
                    calendarId=self._resolve_calendar(calendar_id),
                    body=body,
                    sendUpdates=send_updates,
                    conferenceDataVersion=1,
                )
                .execute()
            )
        except HttpError as e:
            raise CalendarAPIError(f"Unable to create event: {e}", self._status_of(e)) from e

        created = CreatedEvent(
            id=result["id"],
            html_link=result.get("htmlLink"),
            hangout_link=result.get("hangoutLink"),
        )
        logger.info(f"Created event {created.id}: {created.html_link}")
        return created

    def create_event(self, event: GcalEvent, calendar_id: str | None = None) -> CreatedEvent:
        """Build and insert an event in one call.

        Invites are emailed to attendees only when ``event.send_invites``
        is set.

        Args:
            event: The simplified event.
            calendar_id: Calendar ID. Defaults to the client's calendar.

        Returns:
            CreatedEvent.
        """
        return self.insert_event(
            self.build_event(event),
            calendar_id=calendar_id,
            send_updates="all" if event.send_invites else "none",
        )

    def _format_datetime(self, dt: datetime | str) -> str:
        """Format datetime for API."""
        if isinstance(dt, str):
            return dt
        return dt.isoformat() + "Z" if dt.tzinfo is None else dt.isoformat()

    def _status_of(self, error: HttpError) -> int | None:
        status = getattr(error.resp, "status", None)
        return int(status) if status is not None else None

    def _parse_time(self, data: dict) -> datetime | None:
        """Parse a start/end object; all-day events only carry a date."""
        value = None
        if "dateTime" in data:
            with contextlib.suppress(ValueError):
                value = datetime.fromisoformat(data["dateTime"].replace("Z", "+00:00"))
        elif "date" in data:
            with contextlib.suppress(ValueError):
                value = datetime.fromisoformat(data["date"])
        return value

    def _parse_event(self, data: dict) -> Event:
        """Parse event from API response."""
        attendees = None
        if data.get("attendees"):
            attendees = [a.get("email", "") for a in data["attendees"]]

        return Event(
            id=data["id"],
            summary=data.get("summary", ""),
            start=self._parse_time(data.get("start", {})),
            end=self._parse_time(data.get("end", {})),
            description=data.get("description"),
            location=data.get("location"),
            status=data.get("status", "confirmed"),
            html_link=data.get("htmlLink"),
            hangout_link=data.get("hangoutLink"),
            attendees=attendees,
        )
