"""Google OAuth management using Authlib.

This module loads the two files the Calendar API needs:
- the OAuth client secret downloaded from Google Cloud Console
- the cached OAuth token, created once by an interactive bootstrap

and turns them into a Calendar API service. Token refresh is handled by
Authlib; refreshed tokens are written back to the token file.

Default locations come from ``gcalman.config``:
    ~/.gcalman/credentials.json - OAuth client secret
    ~/.gcalman/token.json       - OAuth token
"""

import json
import logging
import os
import webbrowser
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import requests
from authlib.integrations.base_client import OAuthError
from authlib.integrations.requests_client import OAuth2Session
from authlib.oauth2 import OAuth2Error
from google.oauth2.credentials import Credentials as GoogleCredentials
from googleapiclient.discovery import build

from gcalman.config import get_credentials_path, get_token_path
from gcalman.google.exceptions import (
    CredentialsNotFoundError,
    InvalidCredentialsError,
    ScopeMismatchError,
    TokenError,
)

logger = logging.getLogger(__name__)


# Calendar OAuth scopes
SCOPES = {
    "calendar": "https://www.googleapis.com/auth/calendar",
    "calendar_readonly": "https://www.googleapis.com/auth/calendar.readonly",
    "calendar_events": "https://www.googleapis.com/auth/calendar.events",
    "calendar_events_readonly": "https://www.googleapis.com/auth/calendar.events.readonly",
}

DEFAULT_REDIRECT_URI = "http://localhost"


class GoogleOAuth:
    """Google OAuth management using Authlib.

    Handles the authorization-code flow, token caching, and Calendar API
    service creation.

    Example:
        >>> auth = GoogleOAuth(scopes=["calendar"])
        >>> if not auth.is_authorized():
        ...     auth.authorize()  # prints a URL, reads the code from stdin
        >>> service = auth.build_service("calendar", "v3")
    """

    AUTHORIZE_URL = "https://accounts.google.com/o/oauth2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    REVOKE_URL = "https://oauth2.googleapis.com/revoke"

    def __init__(
        self,
        scopes: list[str] | None = None,
        client_id: str | None = None,
        client_secret: str | None = None,
        token_path: str | Path | None = None,
        credentials_path: str | Path | None = None,
        redirect_uri: str | None = None,
    ):
        """Initialize Google OAuth.

        Args:
            scopes: List of scope names (e.g., ["calendar"]) or full URLs.
                   If None, defaults to ["calendar"].
            client_id: OAuth client ID (loaded from credentials file if not provided).
            client_secret: OAuth client secret (loaded from credentials file if not provided).
            token_path: Path to store/load tokens. Defaults to config token path.
            credentials_path: Path to OAuth client secret file. Defaults to config credentials path.
            redirect_uri: Redirect URI registered for the client. Defaults to the
                   first entry of ``redirect_uris`` in the client secret file.
        """
        self.token_path = Path(token_path) if token_path else get_token_path()
        self.credentials_path = Path(credentials_path) if credentials_path else get_credentials_path()

        self.required_scopes = self._resolve_scopes(scopes or ["calendar"])

        redirect_uris: list[str] = []
        if not client_id or not client_secret:
            client_id, client_secret, redirect_uris = self._load_client_credentials()

        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri or (
            redirect_uris[0] if redirect_uris else DEFAULT_REDIRECT_URI
        )

        self.session = OAuth2Session(
            client_id=self.client_id,
            client_secret=self.client_secret,
            scope=" ".join(self.required_scopes),
            redirect_uri=self.redirect_uri,
            token=self._load_token(),
            update_token=self._save_token,
            token_endpoint=self.TOKEN_URL,
            grant_type="refresh_token",
            token_endpoint_auth_method="client_secret_post",
        )

        self._state: str | None = None
        self.last_refresh: datetime | None = None
        self.refresh_count = 0

    def _resolve_scopes(self, scopes: list[str]) -> list[str]:
        """Resolve scope names to full URLs."""
        resolved = []
        for scope in scopes:
            if scope.startswith("https://"):
                resolved.append(scope)
            elif scope in SCOPES:
                resolved.append(SCOPES[scope])
            else:
                raise ValueError(
                    f"Unknown scope: {scope}. Use full URL or one of: {list(SCOPES.keys())}"
                )
        return resolved

    def _load_client_credentials(self) -> tuple[str, str, list[str]]:
        """Load OAuth client secret from file."""
        if not self.credentials_path.exists():
            raise CredentialsNotFoundError(str(self.credentials_path))

        path = str(self.credentials_path)
        try:
            with open(self.credentials_path) as f:
                creds = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidCredentialsError(path, f"not valid JSON ({e})") from e

        # Desktop and web clients use different top-level keys
        if not isinstance(creds, dict):
            raise InvalidCredentialsError(path, "expected a JSON object")
        if "installed" in creds:
            app_creds = creds["installed"]
        elif "web" in creds:
            app_creds = creds["web"]
        else:
            raise InvalidCredentialsError(path, "expected 'installed' or 'web' key")

        try:
            return (
                app_creds["client_id"],
                app_creds["client_secret"],
                list(app_creds.get("redirect_uris", [])),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise InvalidCredentialsError(path, f"missing client field {e}") from e

    def _load_token(self) -> dict[str, Any] | None:
        """Load token from storage."""
        if not self.token_path.exists():
            logger.info("No existing token found")
            return None

        try:
            with open(self.token_path) as f:
                token_data = json.load(f)

            expiry = token_data.get("expiry")
            if expiry and isinstance(expiry, str):
                dt = datetime.fromisoformat(expiry.replace("Z", "+00:00"))
                expires_at = dt.timestamp()
            else:
                expires_at = expiry

            # Google token layout -> Authlib layout
            authlib_token = {
                "access_token": token_data.get("token"),
                "refresh_token": token_data.get("refresh_token"),
                "token_type": token_data.get("type", "Bearer"),
                "expires_at": expires_at,
                "scope": " ".join(token_data.get("scopes", [])),
            }

            current_scopes = set(token_data.get("scopes", []))
            required_scopes = set(self.required_scopes)

            if not required_scopes.issubset(current_scopes):
                missing = required_scopes - current_scopes
                logger.warning(f"Token missing required scopes: {missing}")
                return None

            logger.info(f"Loaded token with scopes: {current_scopes}")
            return authlib_token

        except (OSError, ValueError) as e:
            logger.error(f"Failed to load token: {e}")
            return None

    def _save_token(
        self,
        token: dict[str, Any],
        refresh_token: str | None = None,
        access_token: str | None = None,
    ):
        """Save token to storage (Authlib callback)."""
        if access_token:
            token["access_token"] = access_token
        if refresh_token and not token.get("refresh_token"):
            token["refresh_token"] = refresh_token

        # Refresh responses may omit scope; they keep the granted ones
        token_scopes = set(token.get("scope", "").split()) or set(self.required_scopes)
        required_scopes = set(self.required_scopes)

        if not required_scopes.issubset(token_scopes):
            missing = required_scopes - token_scopes
            raise ScopeMismatchError(missing)

        google_token = {
            "token": token["access_token"],
            "refresh_token": token.get("refresh_token"),
            "token_uri": self.TOKEN_URL,
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "scopes": sorted(token_scopes),
            "type": token.get("token_type", "Bearer"),
            "expiry": token.get("expires_at"),
            "_class": "google.oauth2.credentials.Credentials",
        }

        self.token_path.parent.mkdir(parents=True, exist_ok=True)
        # Created owner-only; chmod covers a file that already existed
        fd = os.open(self.token_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        os.chmod(self.token_path, 0o600)
        with os.fdopen(fd, "w") as f:
            json.dump(google_token, f, indent=2)

        self.last_refresh = datetime.now()
        self.refresh_count += 1

        logger.info(f"Token saved to {self.token_path} with scopes: {token_scopes}")

    def is_authorized(self) -> bool:
        """Check if we have a token carrying all required scopes.

        Returns:
            True if authorized with all required scopes, False otherwise.
        """
        if not self.session.token:
            return False

        token_scopes = set(self.session.token.get("scope", "").split())
        required_scopes = set(self.required_scopes)

        return required_scopes.issubset(token_scopes)

    def get_authorization_url(self) -> str:
        """Start OAuth authorization flow.

        Returns:
            Authorization URL for user to visit.
        """
        authorization_url, state = self.session.create_authorization_url(
            self.AUTHORIZE_URL,
            access_type="offline",
            prompt="consent",
            include_granted_scopes="true",
        )

        self._state = state
        return authorization_url

    def exchange_code(self, code: str) -> dict[str, Any]:
        """Exchange an authorization code for a token and cache it.

        Args:
            code: The authorization code shown by Google after consent.

        Returns:
            The fetched OAuth token dict.

        Raises:
            TokenError: If Google rejects the code.
        """
        try:
            token = self.session.fetch_token(
                self.TOKEN_URL,
                grant_type="authorization_code",
                code=code,
            )
        except (OAuth2Error, OAuthError) as e:
            raise TokenError(f"Unable to retrieve token from web: {e}") from e

        self._save_token(token)
        return token

    def fetch_token(self, authorization_response: str) -> dict[str, Any]:
        """Complete authorization flow from the redirect URL and cache the token.

        Args:
            authorization_response: The full redirect URL from OAuth callback.

        Returns:
            The fetched OAuth token dict.

        Raises:
            TokenError: If Google rejects the code.
        """
        try:
            token = self.session.fetch_token(
                self.TOKEN_URL,
                authorization_response=authorization_response,
            )
        except (OAuth2Error, OAuthError) as e:
            raise TokenError(f"Unable to retrieve token from web: {e}") from e

        self._save_token(token)
        return token

    def authorize(
        self,
        prompt: Callable[[str], str] = input,
        open_browser: bool = False,
    ) -> dict[str, Any]:
        """Bootstrap a token interactively.

        Shows the consent URL, then reads either the authorization code or
        the full redirect URL and exchanges it for a token, which is written
        to ``token_path``.

        Args:
            prompt: Reads one line of user input. Defaults to ``input``.
            open_browser: Also open the consent URL in a browser.

        Returns:
            The fetched OAuth token dict.

        Raises:
            TokenError: If no code was entered or the exchange failed.
        """
        url = self.get_authorization_url()
        print(
            "Go to the following link in your browser then type the "
            f"authorization code:\n{url}\n"
        )
        if open_browser:
            webbrowser.open(url)

        response = prompt("Authorization code or redirect URL: ").strip()
        if not response:
            raise TokenError("Unable to read authorization code: nothing entered")

        if response.startswith(("http://", "https://")):
            token = self.fetch_token(response)
        else:
            token = self.exchange_code(response)

        print(f"Saving credential file to: {self.token_path}")
        return token

    def get_credentials(self) -> GoogleCredentials:
        """Get Google Credentials object for API client libraries.

        Returns:
            Google Credentials object with current token.

        Raises:
            TokenError: If not authorized or token refresh fails.
        """
        if not self.is_authorized():
            raise TokenError("Not authorized or missing required scopes")

        expires_at = self.session.token.get("expires_at", 0)
        if expires_at and expires_at < datetime.now().timestamp():
            logger.info("Token expired, refreshing...")
            try:
                self.session.refresh_token(
                    self.TOKEN_URL,
                    refresh_token=self.session.token.get("refresh_token"),
                )
            except (OAuth2Error, OAuthError) as e:
                raise TokenError(f"Failed to refresh token: {e}") from e

        return GoogleCredentials(
            token=self.session.token["access_token"],
            refresh_token=self.session.token.get("refresh_token"),
            token_uri=self.TOKEN_URL,
            client_id=self.client_id,
            client_secret=self.client_secret,
            scopes=self.required_scopes,
        )

    def build_service(self, service_name: str = "calendar", version: str = "v3"):
        """Build a Google API service with current credentials.

        Args:
            service_name: Name of the service.
            version: API version.

        Returns:
            Google API service object.
        """
        creds = self.get_credentials()
        return build(service_name, version, credentials=creds, cache_discovery=False)

    def revoke_token(self):
        """Revoke the current token and clear local storage."""
        if not self.session.token:
            logger.warning("No token to revoke")
            return

        try:
            self.session.post(
                self.REVOKE_URL,
                params={"token": self.session.token["access_token"]},
                withhold_token=True,
            )
        except (requests.RequestException, OAuth2Error, OAuthError) as e:
            logger.warning(f"Failed to revoke token remotely: {e}")

        if self.token_path.exists():
            self.token_path.unlink()

        self.session.token = None
        logger.info("Token revoked successfully")

    def get_token_info(self) -> dict[str, Any]:
        """Get information about the current token.

        Returns:
            Dictionary with token status, scopes, expiry, etc.
        """
        if not self.session.token:
            return {"status": "no_token"}

        token = self.session.token
        expires_at = token.get("expires_at", 0)

        if expires_at:
            expires_in = expires_at - datetime.now().timestamp()
            expires_str = str(timedelta(seconds=max(0, expires_in)))
            is_expired = expires_at < datetime.now().timestamp()
        else:
            expires_str = "unknown"
            is_expired = False

        return {
            "status": "valid" if not is_expired else "expired",
            "scopes": token.get("scope", "").split(),
            "expires_in": expires_str,
            "has_refresh_token": bool(token.get("refresh_token")),
            "refresh_count": self.refresh_count,
            "last_refresh": self.last_refresh.isoformat() if self.last_refresh else None,
        }
