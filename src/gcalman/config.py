"""Credential and calendar configuration.

Files live in a single config directory, ``~/.gcalman`` unless
``GCALMAN_HOME`` says otherwise:
    .env              - environment overrides (GCALMAN_*, LOG_LEVEL)
    credentials.json  - Google OAuth client secret
    token.json        - cached OAuth token

Individual paths can be overridden with ``GCALMAN_CREDENTIALS`` and
``GCALMAN_TOKEN``. Explicit arguments passed to ``GoogleOAuth`` or
``CalendarClient`` take precedence over both.

The .env file is loaded on import; variables already set in the
environment are never overwritten.
"""

import os
from pathlib import Path

CONFIG_DIR = Path(os.environ.get("GCALMAN_HOME", Path.home() / ".gcalman")).expanduser()

ENV_FILE = CONFIG_DIR / ".env"
DEFAULT_CREDENTIALS = CONFIG_DIR / "credentials.json"
DEFAULT_TOKEN = CONFIG_DIR / "token.json"
DEFAULT_CALENDAR_ID = "primary"


def _load_env_file(env_path: Path) -> dict[str, str]:
    """Load environment variables from a file.

    Args:
        env_path: Path to .env file.

    Returns:
        Dictionary of loaded variables.
    """
    loaded = {}
    if not env_path.exists():
        return loaded

    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue

            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()

            if (value.startswith('"') and value.endswith('"')) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]

            # Environment wins over .env
            if key and key not in os.environ:
                os.environ[key] = value
                loaded[key] = value

    return loaded


def get_credentials_path() -> Path:
    """Path to the OAuth client secret file."""
    override = os.environ.get("GCALMAN_CREDENTIALS")
    return Path(override).expanduser() if override else DEFAULT_CREDENTIALS


def get_token_path() -> Path:
    """Path to the cached OAuth token file."""
    override = os.environ.get("GCALMAN_TOKEN")
    return Path(override).expanduser() if override else DEFAULT_TOKEN


def get_calendar_id() -> str:
    """Calendar used when callers don't name one."""
    return os.environ.get("GCALMAN_CALENDAR_ID") or DEFAULT_CALENDAR_ID


def ensure_config_dir() -> Path:
    """Create the config directory if it doesn't exist.

    Returns:
        Path to config directory.
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    return CONFIG_DIR


def get_credential_status(
    credentials_path: str | Path | None = None,
    token_path: str | Path | None = None,
) -> dict:
    """Get status of the configured credential files.

    Returns:
        Dictionary with paths and whether each file exists.
    """
    creds = Path(credentials_path) if credentials_path else get_credentials_path()
    token = Path(token_path) if token_path else get_token_path()
    return {
        "config_dir": str(CONFIG_DIR),
        "env_file": ENV_FILE.exists(),
        "calendar_id": get_calendar_id(),
        "credentials": {"path": str(creds), "exists": creds.exists()},
        "token": {"path": str(token), "exists": token.exists()},
    }


_loaded = _load_env_file(ENV_FILE)
