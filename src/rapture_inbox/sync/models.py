#!/usr/bin/env python3
"""
Sync Models

Run state and per-run outcome for inbox syncs.
"""

from dataclasses import dataclass, field
from enum import Enum


class SyncStatus(Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"


@dataclass
class SyncResult:
    """Outcome of one sync run. Errors are kept in the order they happened."""

    success: bool = True
    files_downloaded: int = 0
    errors: list[str] = field(default_factory=list)
