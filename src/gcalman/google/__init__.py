"""Google OAuth authentication for the Calendar API."""

from gcalman.google.exceptions import (
    AuthorizationRequired,
    CredentialsNotFoundError,
    GoogleAuthError,
    InvalidCredentialsError,
    ScopeMismatchError,
    TokenError,
)
from gcalman.google.oauth import GoogleOAuth

__all__ = [
    "GoogleOAuth",
    "GoogleAuthError",
    "AuthorizationRequired",
    "CredentialsNotFoundError",
    "InvalidCredentialsError",
    "TokenError",
    "ScopeMismatchError",
]
