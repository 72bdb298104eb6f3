#!/usr/bin/env python3
"""
Rapture Inbox Command Line Interface

Moves notes from the shared Google Drive inbox folder (Rapture/Obsidian) into
a local vault folder.

Commands:
  auth      Sign in, sign out, or show account status
  sync      Run one inbox sync
  watch     Sync on a fixed interval until interrupted
  config    Change the destination folder or sync interval
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any

from rapture_inbox.auth import (
    AuthError,
    CredentialManager,
    handle_oauth_callback,
    manual_authorization_flow,
    parse_callback_url,
)
from rapture_inbox.client import DriveClient
from rapture_inbox.constants import DEFAULT_DESTINATION_FOLDER, SYNC_INTERVAL_CHOICES
from rapture_inbox.logging_config import setup_logging
from rapture_inbox.settings import SettingsStore
from rapture_inbox.storage import LocalStore
from rapture_inbox.sync import SyncEngine, format_time_ago, manual_sync, run_polling, summarize_result

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="rapture-inbox",
        description="Move notes from the Rapture Google Drive inbox into a local vault",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Connect a Google account
  rapture-inbox auth login

  # Sync once into a vault
  rapture-inbox sync --vault ~/Notes

  # Keep syncing every 10 minutes
  rapture-inbox watch --vault ~/Notes --interval 10
        """,
    )
    parser.add_argument("--config-dir", type=Path, help="Directory holding settings.json")
    parser.add_argument(
        "--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level"
    )
    parser.add_argument("--log-file", type=Path, help="Log file (default: timestamped file in logs/)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    auth_parser = subparsers.add_parser("auth", help="Manage the Google account connection")
    auth_subparsers = auth_parser.add_subparsers(dest="auth_command", help="Auth commands")
    login_parser = auth_subparsers.add_parser("login", help="Connect a Google account")
    login_parser.add_argument("--code", help="Authorization code to exchange without prompting")
    callback_parser = auth_subparsers.add_parser("callback", help="Complete sign-in from a redirect URL")
    callback_parser.add_argument("url", help="The obsidian://rapture-inbox?... redirect URL")
    auth_subparsers.add_parser("logout", help="Disconnect the Google account")
    auth_subparsers.add_parser("status", help="Show connection and last sync status")

    sync_parser = subparsers.add_parser("sync", help="Run one inbox sync")
    _add_vault_arguments(sync_parser)

    watch_parser = subparsers.add_parser("watch", help="Sync on an interval until interrupted")
    _add_vault_arguments(watch_parser)
    watch_parser.add_argument("--interval", type=int, choices=SYNC_INTERVAL_CHOICES, help="Minutes between syncs")
    watch_parser.add_argument("--no-initial-sync", action="store_true", help="Wait one interval before the first sync")

    config_parser = subparsers.add_parser("config", help="Change saved settings")
    config_subparsers = config_parser.add_subparsers(dest="config_command", help="Config commands")
    destination_parser = config_subparsers.add_parser("set-destination", help="Vault folder notes are saved to")
    destination_parser.add_argument("folder")
    interval_parser = config_subparsers.add_parser("set-interval", help="Minutes between scheduled syncs")
    interval_parser.add_argument("minutes", type=int, choices=SYNC_INTERVAL_CHOICES)

    return parser


def _add_vault_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--vault", type=Path, help="Vault root directory (saved for later runs)")
    parser.add_argument("--destination", help="Folder inside the vault for synced notes (saved for later runs)")


async def _apply_vault_arguments(args: argparse.Namespace, store: SettingsStore) -> None:
    """Persist --vault/--destination overrides so later runs reuse them."""
    changed = False
    if getattr(args, "vault", None):
        store.settings.vault_path = str(args.vault.expanduser())
        changed = True
    if getattr(args, "destination", None):
        store.settings.destination_folder = args.destination
        changed = True
    if changed:
        await store.save()


def build_engine(store: SettingsStore, credentials: CredentialManager) -> tuple[DriveClient, SyncEngine]:
    drive = DriveClient(credentials)
    local_store = LocalStore(store.settings.vault_path)
    return drive, SyncEngine(drive, local_store, store.settings)


async def _auth_command(args: argparse.Namespace, store: SettingsStore, credentials: CredentialManager) -> int:
    if args.auth_command == "login":
        try:
            if args.code:
                message = await handle_oauth_callback({"code": args.code}, credentials)
            else:
                message = await handle_oauth_callback(manual_authorization_flow(), credentials)
        except AuthError as e:
            print(f"❌ {e}")
            return 1
        print(f"✅ {message}")
        return 0

    if args.auth_command == "callback":
        try:
            message = await handle_oauth_callback(parse_callback_url(args.url), credentials)
        except AuthError as e:
            print(f"❌ {e}")
            return 1
        print(f"✅ {message}")
        return 0

    if args.auth_command == "logout":
        await credentials.sign_out()
        print("Signed out")
        return 0

    if args.auth_command == "status":
        settings = store.settings
        if credentials.is_authenticated():
            print(f"Connected as: {settings.user_email or 'Unknown'}")
        else:
            print("Not connected. Run 'rapture-inbox auth login' to connect a Google account.")
        print(f"Vault: {settings.vault_path}")
        print(f"Destination folder: {settings.destination_folder}")
        print(f"Sync interval: {settings.sync_interval_minutes} minutes")
        print(f"Last synced: {format_time_ago(settings.last_sync_timestamp)}")
        return 0

    print("Usage: rapture-inbox auth {login,callback,logout,status}")
    return 1


async def _sync_command(args: argparse.Namespace, store: SettingsStore, credentials: CredentialManager) -> int:
    await _apply_vault_arguments(args, store)
    if not credentials.is_authenticated():
        print("Please connect your Google account first: rapture-inbox auth login")
        return 1

    drive, engine = build_engine(store, credentials)
    try:
        print("Syncing Rapture notes...")
        result = await manual_sync(engine, credentials, store)
    finally:
        await drive.close()

    print(summarize_result(result))
    return 0 if result.success else 1


def _install_stop_handlers(stop_event: asyncio.Event) -> None:
    """Stop the watch loop on SIGINT/SIGTERM; a second signal exits immediately."""
    loop = asyncio.get_event_loop()

    def signal_handler(signum: int, frame: Any) -> None:
        if stop_event.is_set():
            print(f"\nReceived second signal {signum}, exiting immediately...")
            sys.exit(1)
        print(f"\nReceived signal {signum}, finishing current sync...")
        loop.call_soon_threadsafe(stop_event.set)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


async def _watch_command(args: argparse.Namespace, store: SettingsStore, credentials: CredentialManager) -> int:
    await _apply_vault_arguments(args, store)
    if args.interval:
        store.settings.sync_interval_minutes = args.interval
        await store.save()

    if not credentials.is_authenticated():
        print("Please connect your Google account first: rapture-inbox auth login")
        return 1

    stop_event = asyncio.Event()
    _install_stop_handlers(stop_event)

    sync_on_start = False if args.no_initial_sync else None
    drive, engine = build_engine(store, credentials)
    print(f"Syncing every {store.settings.sync_interval_minutes} minutes. Press Control-C to stop.")
    try:
        runs = await run_polling(engine, credentials, store, stop_event, sync_on_start=sync_on_start)
    finally:
        await drive.close()

    print(f"Stopped after {runs} sync runs")
    return 0


async def _config_command(args: argparse.Namespace, store: SettingsStore) -> int:
    if args.config_command == "set-destination":
        store.settings.destination_folder = args.folder or DEFAULT_DESTINATION_FOLDER
        await store.save()
        print(f"Destination folder: {store.settings.destination_folder}")
        return 0

    if args.config_command == "set-interval":
        store.settings.sync_interval_minutes = args.minutes
        await store.save()
        print(f"Sync interval: {args.minutes} minutes")
        return 0

    print("Usage: rapture-inbox config {set-destination,set-interval}")
    return 1


async def async_main(argv: list[str] | None = None) -> int:
    """Parse arguments and route to the requested command."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.log_level, args.log_file)

    store = SettingsStore(config_dir=args.config_dir)
    store.load()
    credentials = CredentialManager(store)

    try:
        if args.command == "auth":
            return await _auth_command(args, store, credentials)
        elif args.command == "sync":
            return await _sync_command(args, store, credentials)
        elif args.command == "watch":
            return await _watch_command(args, store, credentials)
        elif args.command == "config":
            return await _config_command(args, store)
        else:
            print(f"Unknown command: {args.command}")
            parser.print_help()
            return 1
    finally:
        await credentials.close()


def main() -> int:
    """Console script entry point."""
    return asyncio.run(async_main())


if __name__ == "__main__":
    sys.exit(main())
