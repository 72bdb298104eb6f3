#!/usr/bin/env python3
"""
Sync Runner

Manual and scheduled triggering of SyncEngine runs, plus the user-facing
summaries printed by the CLI.
"""

import asyncio
import logging
import time

from rapture_inbox.auth import CredentialManager
from rapture_inbox.constants import NOT_AUTHENTICATED_MESSAGE
from rapture_inbox.settings import SettingsStore
from rapture_inbox.sync.engine import SyncEngine
from rapture_inbox.sync.models import SyncResult

logger = logging.getLogger(__name__)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


def summarize_result(result: SyncResult) -> str:
    """One-line summary of a sync run."""
    if not result.success:
        return f"Sync failed: {', '.join(result.errors)}"
    if result.files_downloaded > 0:
        return f"Synced {_plural(result.files_downloaded, 'new Rapture note')}"
    return "No new Rapture notes to sync"


def format_time_ago(timestamp: float, now: float | None = None) -> str:
    """Describe how long ago a sync happened, e.g. "5 minutes ago"."""
    if not timestamp:
        return "Never synced"

    now = time.time() if now is None else now
    diff_seconds = max(0.0, now - timestamp)
    diff_mins = int(diff_seconds // 60)
    diff_hours = int(diff_seconds // 3600)
    diff_days = int(diff_seconds // 86400)

    if diff_mins < 1:
        return "just now"
    elif diff_mins < 60:
        return f"{_plural(diff_mins, 'minute')} ago"
    elif diff_hours < 24:
        return f"{_plural(diff_hours, 'hour')} ago"
    return f"{_plural(diff_days, 'day')} ago"


async def manual_sync(engine: SyncEngine, credentials: CredentialManager, store: SettingsStore) -> SyncResult:
    """
    Run a sync on demand.

    Refuses to start without credentials. A successful run records the time in
    settings as last_sync_timestamp.
    """
    if not credentials.is_authenticated():
        logger.warning("Sync skipped: not signed in")
        return SyncResult(success=False, files_downloaded=0, errors=[NOT_AUTHENTICATED_MESSAGE])

    result = await engine.sync_now()

    if result.success:
        store.settings.last_sync_timestamp = time.time()
        await store.save()

    logger.info(summarize_result(result))
    return result


async def run_polling(
    engine: SyncEngine,
    credentials: CredentialManager,
    store: SettingsStore,
    stop_event: asyncio.Event | None = None,
    sync_on_start: bool | None = None,
) -> int:
    """
    Sync every sync_interval_minutes until stopped or signed out.

    Syncs immediately on start when sync_on_start is set; the argument overrides
    the saved setting for this loop only. A run in flight is always allowed to
    finish; the stop event is only checked between runs.

    Returns:
        int: Number of sync runs performed
    """
    stop_event = stop_event or asyncio.Event()
    if sync_on_start is None:
        sync_on_start = store.settings.sync_on_start
    runs = 0
    first = True

    while not stop_event.is_set():
        if not credentials.is_authenticated():
            logger.warning("Not signed in, stopping scheduled sync")
            break

        if not first or sync_on_start:
            await manual_sync(engine, credentials, store)
            runs += 1
        first = False

        interval_seconds = store.settings.sync_interval_minutes * 60
        logger.debug(f"Next sync in {interval_seconds}s")
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except TimeoutError:
            continue

    return runs
