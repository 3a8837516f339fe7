"""CLI for gcalman - Google Calendar from the command line.

Usage:
    gcalman init                          # Create config directory, show setup instructions
    gcalman status                        # Show credential file status
    gcalman auth import <path>            # Import OAuth client secret
    gcalman auth login                    # Interactive token bootstrap
    gcalman auth status                   # Show OAuth token status
    gcalman auth refresh                  # Refresh OAuth token
    gcalman auth revoke                   # Revoke OAuth token
    gcalman events list                   # Show upcoming events
    gcalman events create --title ...     # Create an event

Global options --credentials and --token point at non-default files.
"""

from __future__ import annotations

import argparse
import json
import shutil
import sys
from pathlib import Path


def cmd_init() -> int:
    """Initialize the gcalman config directory."""
    from gcalman.config import (
        CONFIG_DIR,
        DEFAULT_CREDENTIALS,
        DEFAULT_TOKEN,
        ENV_FILE,
        ensure_config_dir,
    )

    print("=" * 60)
    print("GCALMAN SETUP")
    print("=" * 60)
    print()

    ensure_config_dir()
    print(f"Created: {CONFIG_DIR}/")
    print()

    print("Credential locations:")
    print()
    print(f"  {DEFAULT_CREDENTIALS}")
    print("    OAuth client secret from Google Cloud Console")
    print()
    print(f"  {DEFAULT_TOKEN}")
    print("    OAuth token (created by 'gcalman auth login')")
    print()
    print(f"  {ENV_FILE}")
    print("    Optional: GCALMAN_CALENDAR_ID, GCALMAN_CREDENTIALS, GCALMAN_TOKEN, LOG_LEVEL")
    print()
    print("-" * 60)
    print()

    if DEFAULT_CREDENTIALS.exists():
        print("credentials.json exists")
    else:
        print("Download OAuth client credentials (Desktop app) from:")
        print("  https://console.cloud.google.com/apis/credentials")
        print("Then run: gcalman auth import <path>")
        print()

    return 0


def cmd_status(credentials_path: str | None, token_path: str | None) -> int:
    """Show status of the credential files."""
    from gcalman.config import get_credential_status

    status = get_credential_status(credentials_path, token_path)

    print("=" * 60)
    print("GCALMAN CREDENTIAL STATUS")
    print("=" * 60)
    print()
    print(f"Config dir : {status['config_dir']}")
    print(f"Calendar   : {status['calendar_id']}")
    print()
    creds = status["credentials"]
    token = status["token"]
    print(f"  {'[x]' if creds['exists'] else '[ ]'} credentials.json  {creds['path']}")
    print(f"  {'[x]' if token['exists'] else '[ ]'} token.json        {token['path']}")
    print(f"  {'[x]' if status['env_file'] else '[ ]'} .env")
    print()

    return 0


def auth_import(source_path: str, credentials_path: str | None) -> int:
    """Import OAuth client secret from a file."""
    from gcalman.config import ensure_config_dir, get_credentials_path

    source = Path(source_path).expanduser()

    if not source.exists():
        print(f"Error: File not found: {source}")
        return 1

    try:
        with open(source) as f:
            data = json.load(f)

        if "installed" not in data and "web" not in data:
            print("Error: Invalid OAuth credentials format")
            print("Expected 'installed' or 'web' key in JSON")
            return 1

        key = "installed" if "installed" in data else "web"
        client_id = data[key].get("client_id", "unknown")

    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON: {e}")
        return 1

    target = Path(credentials_path) if credentials_path else get_credentials_path()
    if credentials_path is None:
        ensure_config_dir()
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.copy2(source, target)

    print("Imported OAuth credentials")
    print(f"  From: {source}")
    print(f"  To:   {target}")
    print(f"  Client ID: {client_id[:40]}...")
    print()
    print("Next: Run 'gcalman auth login' to authorize")
    return 0


def auth_login(credentials_path: str | None, token_path: str | None, no_browser: bool) -> int:
    """Interactive token bootstrap."""
    from gcalman.google import CredentialsNotFoundError, GoogleAuthError, GoogleOAuth

    print("=" * 60)
    print("GCALMAN LOGIN")
    print("=" * 60)

    try:
        auth = GoogleOAuth(credentials_path=credentials_path, token_path=token_path)
    except GoogleAuthError as e:
        print(f"\nError: {e}")
        if isinstance(e, CredentialsNotFoundError):
            print("Run 'gcalman init' for setup instructions")
        return 1

    info = auth.get_token_info()
    if auth.is_authorized() and info["status"] == "valid":
        print("\nAlready authorized with valid token")
        return auth_status(credentials_path, token_path)

    if info["status"] == "expired":
        print("\nToken expired, attempting refresh...")
        try:
            auth.get_credentials()  # Triggers refresh
            if auth.get_token_info()["status"] == "valid":
                print("Token refreshed successfully!")
                return auth_status(credentials_path, token_path)
        except GoogleAuthError as e:
            print(f"Refresh failed: {e}")
            print("Starting new authorization flow...")

    print()
    try:
        auth.authorize(open_browser=not no_browser)
    except GoogleAuthError as e:
        print(f"\nError: {e}")
        return 1

    print("\nToken saved successfully!")
    return auth_status(credentials_path, token_path)


def auth_status(credentials_path: str | None, token_path: str | None) -> int:
    """Show OAuth token status."""
    from gcalman.google import CredentialsNotFoundError, GoogleAuthError, GoogleOAuth

    try:
        auth = GoogleOAuth(credentials_path=credentials_path, token_path=token_path)
    except GoogleAuthError as e:
        print(f"Error: {e}")
        if isinstance(e, CredentialsNotFoundError):
            print("Run 'gcalman init' for setup instructions")
        return 1

    info = auth.get_token_info()

    if info["status"] == "no_token":
        print("No token found - run 'gcalman auth login'")
        return 1

    print(f"Status     : {info['status']}")
    print(f"Scopes     : {', '.join(info.get('scopes', []))}")
    print(f"Expires in : {info.get('expires_in', 'unknown')}")
    print(f"Refreshed  : {info.get('last_refresh') or 'never'}")
    return 0


def auth_refresh(credentials_path: str | None, token_path: str | None) -> int:
    """Refresh OAuth token."""
    from gcalman.google import CredentialsNotFoundError, GoogleAuthError, GoogleOAuth, TokenError

    try:
        auth = GoogleOAuth(credentials_path=credentials_path, token_path=token_path)
    except GoogleAuthError as e:
        print(f"Error: {e}")
        if isinstance(e, CredentialsNotFoundError):
            print("Run 'gcalman init' for setup instructions")
        return 1

    if not auth.is_authorized():
        print("No valid token - run 'gcalman auth login'")
        return 1

    try:
        auth.get_credentials()  # Triggers refresh if expired
    except TokenError as e:
        print(f"\nRefresh failed: {e}")
        print("You may need to re-authenticate: gcalman auth login")
        return 1

    print("Token refreshed successfully!")
    return auth_status(credentials_path, token_path)


def auth_revoke(credentials_path: str | None, token_path: str | None) -> int:
    """Revoke OAuth token."""
    from gcalman.google import CredentialsNotFoundError, GoogleAuthError, GoogleOAuth

    try:
        auth = GoogleOAuth(credentials_path=credentials_path, token_path=token_path)
    except CredentialsNotFoundError:
        print("No credentials to revoke")
        return 0
    except GoogleAuthError as e:
        print(f"Error: {e}")
        return 1

    auth.revoke_token()
    print("Token revoked and local cache cleared")
    return 0


def events_list(
    credentials_path: str | None,
    token_path: str | None,
    calendar_id: str | None,
    max_results: int,
) -> int:
    """Print upcoming events."""
    from gcalman.calendar import CalendarClient, CalendarError
    from gcalman.google import GoogleAuthError

    client = CalendarClient(credentials_path=credentials_path, token_path=token_path)
    try:
        events = client.list_upcoming_events(calendar_id=calendar_id, max_results=max_results)
    except (GoogleAuthError, CalendarError) as e:
        print(f"Error: {e}")
        return 1

    print("Upcoming events:")
    if not events:
        print("No upcoming events found.")
        return 0

    for event in events:
        when = event.start.isoformat() if event.start else "unknown"
        print(f"{event.summary} ({when})")
    return 0


def events_create(credentials_path: str | None, token_path: str | None, args) -> int:
    """Create an event from command-line arguments."""
    from gcalman.calendar import CalendarClient, CalendarError, GcalEvent
    from gcalman.google import GoogleAuthError

    event = GcalEvent(
        title=args.title,
        start=args.start,
        end=args.end,
        description=args.description or "",
        attendee_emails=args.attendee or [],
        location=args.location or "",
        send_invites=not args.no_invites,
        accepted=args.accepted,
        use_default_reminders=not args.no_default_reminders,
        add_conference=not args.no_conference,
        time_zone=args.time_zone,
    )

    client = CalendarClient(credentials_path=credentials_path, token_path=token_path)
    try:
        created = client.create_event(event, calendar_id=args.calendar)
    except (GoogleAuthError, CalendarError) as e:
        print(f"Error: {e}")
        return 1

    print("Create event success")
    print(f"  ID:   {created.id}")
    print(f"  Link: {created.html_link}")
    if created.hangout_link:
        print(f"  Meet: {created.hangout_link}")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="gcalman",
        description="Google Calendar manager",
    )
    parser.add_argument("--credentials", help="Path to OAuth client secret JSON")
    parser.add_argument("--token", help="Path to cached OAuth token JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log library activity")
    subparsers = parser.add_subparsers(dest="command", help="Command")

    subparsers.add_parser("init", help="Initialize config directory")
    subparsers.add_parser("status", help="Show credential file status")

    # auth subcommand
    auth_parser = subparsers.add_parser("auth", help="OAuth token management")
    auth_subparsers = auth_parser.add_subparsers(dest="auth_command", help="Command")

    import_parser = auth_subparsers.add_parser("import", help="Import OAuth client secret")
    import_parser.add_argument("path", help="Path to credentials.json file")

    login_parser = auth_subparsers.add_parser("login", help="Interactive OAuth login")
    login_parser.add_argument(
        "--no-browser",
        action="store_true",
        help="Don't open browser automatically",
    )

    auth_subparsers.add_parser("status", help="Show token status")
    auth_subparsers.add_parser("refresh", help="Refresh token")
    auth_subparsers.add_parser("revoke", help="Revoke token")

    # events subcommand
    events_parser = subparsers.add_parser("events", help="Calendar events")
    events_subparsers = events_parser.add_subparsers(dest="events_command", help="Command")

    list_parser = events_subparsers.add_parser("list", help="Show upcoming events")
    list_parser.add_argument("--calendar", help="Calendar ID (default: primary)")
    list_parser.add_argument(
        "--max-results",
        type=int,
        default=10,
        help="Number of events to show (default: 10)",
    )

    create_parser = events_subparsers.add_parser("create", help="Create an event")
    create_parser.add_argument("--title", required=True, help="Event title")
    create_parser.add_argument("--start", required=True, help="Start time, ISO-8601")
    create_parser.add_argument("--end", required=True, help="End time, ISO-8601")
    create_parser.add_argument("--description", help="Event description")
    create_parser.add_argument("--location", help="Event location")
    create_parser.add_argument(
        "--attendee",
        action="append",
        help="Attendee email (repeatable)",
    )
    create_parser.add_argument("--time-zone", help="IANA time zone for start and end")
    create_parser.add_argument("--calendar", help="Calendar ID (default: primary)")
    create_parser.add_argument(
        "--no-invites",
        action="store_true",
        help="Don't email invitations to attendees",
    )
    create_parser.add_argument(
        "--accepted",
        action="store_true",
        help="Mark attendees as having accepted",
    )
    create_parser.add_argument(
        "--no-conference",
        action="store_true",
        help="Don't attach a Google Meet link",
    )
    create_parser.add_argument(
        "--no-default-reminders",
        action="store_true",
        help="Don't use the calendar's default reminders",
    )

    args = parser.parse_args(argv if argv is not None else sys.argv[1:])

    if args.verbose:
        from gcalman.logging import configure_logging

        configure_logging()

    if args.command is None:
        parser.print_help()
        return 0

    if args.command == "init":
        return cmd_init()

    if args.command == "status":
        return cmd_status(args.credentials, args.token)

    if args.command == "auth":
        if args.auth_command == "import":
            return auth_import(args.path, args.credentials)
        elif args.auth_command == "login":
            return auth_login(args.credentials, args.token, args.no_browser)
        elif args.auth_command == "status":
            return auth_status(args.credentials, args.token)
        elif args.auth_command == "refresh":
            return auth_refresh(args.credentials, args.token)
        elif args.auth_command == "revoke":
            return auth_revoke(args.credentials, args.token)
        else:
            auth_parser.print_help()
            return 0

    if args.command == "events":
        if args.events_command == "list":
            return events_list(args.credentials, args.token, args.calendar, args.max_results)
        elif args.events_command == "create":
            return events_create(args.credentials, args.token, args)
        else:
            events_parser.print_help()
            return 0

    return 0


if __name__ == "__main__":
    sys.exit(main())
