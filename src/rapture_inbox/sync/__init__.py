"""
Inbox sync: engine, run models and scheduling.
"""

from .engine import SyncEngine, add_timestamp_suffix
from .models import SyncResult, SyncStatus
from .runner import format_time_ago, manual_sync, run_polling, summarize_result

__all__ = [
    "SyncEngine",
    "SyncResult",
    "SyncStatus",
    "add_timestamp_suffix",
    "format_time_ago",
    "manual_sync",
    "run_polling",
    "summarize_result",
]
