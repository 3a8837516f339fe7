"""Google Calendar API client with OAuth authentication.

A narrow wrapper around the Calendar v3 API: list upcoming events and
create events from a simplified description.

Usage:
    from gcalman.calendar import CalendarClient, GcalEvent

    client = CalendarClient()

    # Next ten events on the primary calendar
    events = client.list_upcoming_events()

    # Create an event and email the invites
    created = client.create_event(
        GcalEvent(
            title="Team Meeting",
            start="2026-01-25T10:00:00Z",
            end="2026-01-25T11:00:00Z",
            attendee_emails=["a@example.com", "b@example.com"],
        )
    )

OAuth Setup:
    1. Download OAuth credentials from Google Cloud Console
    2. Import: gcalman auth import ~/Downloads/credentials.json
    3. Authorize: gcalman auth login
"""

from __future__ import annotations

from gcalman.calendar.client import CalendarClient, CreatedEvent, Event, GcalEvent
from gcalman.calendar.exceptions import CalendarAPIError, CalendarError

__all__ = [
    "CalendarClient",
    "GcalEvent",
    "Event",
    "CreatedEvent",
    "CalendarError",
    "CalendarAPIError",
]
