"""
Sync subsystem: connection manager, reconciliation scheduler, diff engine and
download & dispatch pipeline. The wired-up engine lives in sftpsync.sync.engine.
"""

from sftpsync.sync.types import (
    CycleSummary,
    IngestorSpec,
    LocalFileEntry,
    PendingDownloadSet,
    ProcessingOutcome,
    RemoteFileEntry,
    SessionState,
    SyncSettings,
)

__all__ = [
    "CycleSummary",
    "IngestorSpec",
    "LocalFileEntry",
    "PendingDownloadSet",
    "ProcessingOutcome",
    "RemoteFileEntry",
    "SessionState",
    "SyncSettings",
]
