"""Google authentication exceptions."""


class GoogleAuthError(Exception):
    """Base exception for Google authentication errors."""

    pass


class CredentialsNotFoundError(GoogleAuthError):
    """Raised when OAuth client secret file is not found."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Credentials file not found at {path}. "
            "Please download OAuth credentials from Google Cloud Console."
        )


class InvalidCredentialsError(GoogleAuthError, ValueError):
    """Raised when the OAuth client secret file can't be parsed."""

    def __init__(self, path: str, reason: str):
        self.path = path
        super().__init__(f"Invalid credentials file {path}: {reason}")


class TokenError(GoogleAuthError):
    """Raised when there's an issue with the OAuth token."""

    pass


class ScopeMismatchError(GoogleAuthError):
    """Raised when token scopes don't match required scopes."""

    def __init__(self, missing_scopes: set[str]):
        self.missing_scopes = missing_scopes
        super().__init__(f"Token missing required scopes: {missing_scopes}")


class AuthorizationRequired(GoogleAuthError):
    """Raised when an API call needs a token that has not been bootstrapped yet."""

    def __init__(self, auth_url: str, message: str | None = None):
        self.auth_url = auth_url
        super().__init__(message or f"Authorization required. Visit: {auth_url}")
