"""Google Calendar API exceptions."""


class CalendarError(Exception):
    """Base exception for Calendar errors."""

    pass


class CalendarAPIError(CalendarError):
    """Raised when the Calendar API returns an error."""

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)
