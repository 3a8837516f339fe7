"""Tests for the Calendar client façade."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, Mock

import pytest
from googleapiclient.errors import HttpError

from gcalman.calendar import (
    CalendarAPIError,
    CalendarClient,
    CreatedEvent,
    Event,
    GcalEvent,
)
from gcalman.google.exceptions import AuthorizationRequired


def _http_error(status: int, reason: str = "error") -> HttpError:
    return HttpError(Mock(status=status, reason=reason), b'{"error": {"message": "nope"}}')


@pytest.fixture
def service():
    return MagicMock()


@pytest.fixture
def client(service):
    return CalendarClient(service=service, calendar_id="primary")


@pytest.fixture
def sample_event():
    return GcalEvent(
        title="Design review",
        start="2022-03-31T10:45:26.371Z",
        end="2022-03-31T11:45:26.371Z",
        description="Walk through the new schema",
        attendee_emails=["ann@example.com", "bob@example.com"],
        location="Room 4",
    )


class TestBuildEvent:
    """The simplified event maps 1:1 onto the API event body."""

    def test_fields_copied_unchanged(self, client, sample_event):
        """Should copy title, description, location and times verbatim."""
        body = client.build_event(sample_event)
        assert body["summary"] == "Design review"
        assert body["description"] == "Walk through the new schema"
        assert body["location"] == "Room 4"
        assert body["start"] == {"dateTime": "2022-03-31T10:45:26.371Z"}
        assert body["end"] == {"dateTime": "2022-03-31T11:45:26.371Z"}

    def test_attendees_need_action_by_default(self, client, sample_event):
        """Should list every attendee, awaiting a response."""
        body = client.build_event(sample_event)
        assert body["attendees"] == [
            {"email": "ann@example.com", "responseStatus": "needsAction"},
            {"email": "bob@example.com", "responseStatus": "needsAction"},
        ]

    def test_attendees_accepted(self, client, sample_event):
        """Should mark attendees accepted when the flag is set."""
        sample_event.accepted = True
        body = client.build_event(sample_event)
        assert {a["responseStatus"] for a in body["attendees"]} == {"accepted"}

    def test_reminders(self, client, sample_event):
        """Should map use_default_reminders onto reminders.useDefault."""
        assert client.build_event(sample_event)["reminders"] == {"useDefault": True}
        sample_event.use_default_reminders = False
        assert client.build_event(sample_event)["reminders"] == {"useDefault": False}

    def test_conference_request(self, client, sample_event):
        """Should request a Meet link with a fresh request id each time."""
        first = client.build_event(sample_event)["conferenceData"]["createRequest"]
        second = client.build_event(sample_event)["conferenceData"]["createRequest"]
        assert first["conferenceSolutionKey"] == {"type": "hangoutsMeet"}
        assert len(first["requestId"]) == 16
        assert first["requestId"] != second["requestId"]

    def test_no_conference(self, client, sample_event):
        """Should omit conferenceData when disabled."""
        sample_event.add_conference = False
        assert "conferenceData" not in client.build_event(sample_event)

    def test_empty_optional_fields_omitted(self, client):
        """Should leave out blank description and location."""
        body = client.build_event(GcalEvent(title="t", start="s", end="e"))
        assert "description" not in body
        assert "location" not in body
        assert body["attendees"] == []

    def test_time_zone(self, client, sample_event):
        """Should copy the time zone onto start and end."""
        sample_event.time_zone = "Europe/Berlin"
        body = client.build_event(sample_event)
        assert body["start"]["timeZone"] == "Europe/Berlin"
        assert body["end"]["timeZone"] == "Europe/Berlin"

    def test_build_does_not_touch_service(self, client, service, sample_event):
        """Building is a pure mapping."""
        client.build_event(sample_event)
        service.events.assert_not_called()


class TestInsertEvent:
    """Inserting events and echoing back the result."""

    def test_insert_returns_links(self, client, service, sample_event):
        """Should return id, htmlLink and hangoutLink from the API."""
        service.events.return_value.insert.return_value.execute.return_value = {
            "id": "evt123",
            "htmlLink": "https://calendar.google.com/event?eid=evt123",
            "hangoutLink": "https://meet.google.com/abc-defg-hij",
            "summary": "Design review",
        }

        created = client.insert_event(client.build_event(sample_event))

        assert created == CreatedEvent(
            id="evt123",
            html_link="https://calendar.google.com/event?eid=evt123",
            hangout_link="https://meet.google.com/abc-defg-hij",
        )
        kwargs = service.events.return_value.insert.call_args.kwargs
        assert kwargs["calendarId"] == "primary"
        assert kwargs["sendUpdates"] == "all"
        assert kwargs["conferenceDataVersion"] == 1
        assert kwargs["body"]["summary"] == "Design review"

    def test_insert_without_conference_link(self, client, service):
        """Should leave hangout_link empty when the API returns none."""
        service.events.return_value.insert.return_value.execute.return_value = {
            "id": "evt1",
            "htmlLink": "https://calendar.google.com/event?eid=evt1",
        }
        created = client.insert_event({"summary": "x"})
        assert created.hangout_link is None

    def test_empty_calendar_id_means_primary(self, service):
        """Should fall back to the primary calendar."""
        client = CalendarClient(service=service, calendar_id="")
        service.events.return_value.insert.return_value.execute.return_value = {"id": "e"}
        client.insert_event({"summary": "x"}, calendar_id="")
        assert service.events.return_value.insert.call_args.kwargs["calendarId"] == "primary"

    def test_insert_error(self, client, service):
        """Should wrap API errors with the HTTP status."""
        service.events.return_value.insert.return_value.execute.side_effect = _http_error(403)
        with pytest.raises(CalendarAPIError, match="Unable to create event") as exc_info:
            client.insert_event({"summary": "x"})
        assert exc_info.value.status_code == 403
        assert isinstance(exc_info.value.__cause__, HttpError)

    def test_create_event_sends_invites(self, client, service, sample_event):
        """Should email invites when send_invites is set."""
        service.events.return_value.insert.return_value.execute.return_value = {"id": "e"}
        client.create_event(sample_event, calendar_id="team@example.com")
        kwargs = service.events.return_value.insert.call_args.kwargs
        assert kwargs["sendUpdates"] == "all"
        assert kwargs["calendarId"] == "team@example.com"

    def test_create_event_without_invites(self, client, service, sample_event):
        """Should suppress invite emails when send_invites is off."""
        sample_event.send_invites = False
        service.events.return_value.insert.return_value.execute.return_value = {"id": "e"}
        client.create_event(sample_event)
        assert service.events.return_value.insert.call_args.kwargs["sendUpdates"] == "none"


class TestListUpcomingEvents:
    """Listing upcoming events."""

    def test_list_parameters(self, client, service):
        """Should ask for the next ten single events ordered by start time."""
        service.events.return_value.list.return_value.execute.return_value = {"items": []}
        client.list_upcoming_events()

        kwargs = service.events.return_value.list.call_args.kwargs
        assert kwargs["calendarId"] == "primary"
        assert kwargs["showDeleted"] is False
        assert kwargs["singleEvents"] is True
        assert kwargs["maxResults"] == 10
        assert kwargs["orderBy"] == "startTime"
        assert datetime.fromisoformat(kwargs["timeMin"]).tzinfo is not None

    def test_explicit_time_min(self, client, service):
        """Should format naive datetimes as UTC."""
        service.events.return_value.list.return_value.execute.return_value = {}
        client.list_upcoming_events(time_min=datetime(2026, 1, 1, 9, 0), max_results=3)
        kwargs = service.events.return_value.list.call_args.kwargs
        assert kwargs["timeMin"] == "2026-01-01T09:00:00Z"
        assert kwargs["maxResults"] == 3

    def test_no_events(self, client, service):
        """Should return an empty list when nothing is upcoming."""
        service.events.return_value.list.return_value.execute.return_value = {}
        assert client.list_upcoming_events() == []

    def test_parses_events(self, client, service):
        """Should parse timed and all-day events."""
        service.events.return_value.list.return_value.execute.return_value = {
            "items": [
                {
                    "id": "a",
                    "summary": "Standup",
                    "start": {"dateTime": "2026-01-25T10:00:00Z"},
                    "end": {"dateTime": "2026-01-25T10:15:00Z"},
                    "htmlLink": "https://calendar.google.com/event?eid=a",
                    "hangoutLink": "https://meet.google.com/xyz",
                    "attendees": [{"email": "ann@example.com"}],
                },
                {
                    "id": "b",
                    "summary": "Holiday",
                    "start": {"date": "2026-01-26"},
                    "end": {"date": "2026-01-27"},
                    "status": "tentative",
                },
            ]
        }

        events = client.list_upcoming_events()

        assert events[0] == Event(
            id="a",
            summary="Standup",
            start=datetime(2026, 1, 25, 10, 0, tzinfo=timezone.utc),
            end=datetime(2026, 1, 25, 10, 15, tzinfo=timezone.utc),
            html_link="https://calendar.google.com/event?eid=a",
            hangout_link="https://meet.google.com/xyz",
            attendees=["ann@example.com"],
        )
        assert events[1].start == datetime(2026, 1, 26)
        assert events[1].status == "tentative"
        assert events[1].attendees is None

    def test_unparseable_time(self, client, service):
        """Should leave unparseable times as None."""
        service.events.return_value.list.return_value.execute.return_value = {
            "items": [{"id": "a", "start": {"dateTime": "soon"}}]
        }
        event = client.list_upcoming_events()[0]
        assert event.start is None
        assert event.summary == ""

    def test_list_error(self, client, service):
        """Should wrap API errors."""
        service.events.return_value.list.return_value.execute.side_effect = _http_error(500)
        with pytest.raises(CalendarAPIError) as exc_info:
            client.list_upcoming_events()
        assert exc_info.value.status_code == 500


class TestAuthorization:
    """Service creation from credential files."""

    def test_requires_authorization(self, mock_credentials, tmp_path):
        """Should raise AuthorizationRequired with a consent URL when no token exists."""
        client = CalendarClient(
            credentials_path=mock_credentials,
            token_path=tmp_path / "token.json",
        )
        assert client.is_authorized() is False
        with pytest.raises(AuthorizationRequired) as exc_info:
            client.list_upcoming_events()
        assert "accounts.google.com" in exc_info.value.auth_url

    def test_missing_credentials_not_authorized(self, tmp_path):
        """Should report unauthorized rather than raising."""
        client = CalendarClient(
            credentials_path=tmp_path / "missing.json",
            token_path=tmp_path / "token.json",
        )
        assert client.is_authorized() is False

    def test_builds_service_from_token(self, mock_credentials, mock_token, monkeypatch):
        """Should build the calendar v3 service once and reuse it."""
        built = MagicMock()
        calls = []

        def fake_build(self, name, version):
            calls.append((name, version))
            return built

        monkeypatch.setattr("gcalman.google.oauth.GoogleOAuth.build_service", fake_build)
        client = CalendarClient(credentials_path=mock_credentials, token_path=mock_token)
        built.events.return_value.list.return_value.execute.return_value = {}

        assert client.is_authorized() is True
        client.list_upcoming_events()
        client.list_upcoming_events()
        assert calls == [("calendar", "v3")]

    def test_authorize_resets_service(self, mock_credentials, tmp_path, monkeypatch):
        """Should run the bootstrap and drop any cached service."""
        seen = []
        monkeypatch.setattr(
            "gcalman.google.oauth.GoogleOAuth.authorize",
            lambda self, prompt, open_browser: seen.append(open_browser),
        )
        client = CalendarClient(
            credentials_path=mock_credentials,
            token_path=tmp_path / "token.json",
            service=MagicMock(),
        )
        assert client.authorize(prompt=lambda _: "code") is True
        assert seen == [False]
        assert client._service is None
