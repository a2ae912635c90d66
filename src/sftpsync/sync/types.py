"""
Type definitions for the sync engine and ingestion step.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from sftpsync.connections.sftp import SFTPConfig

DEFAULT_EXTENSION = ".csv"
DEFAULT_RECONCILE_INTERVAL_S = 50 * 60
DEFAULT_RECONNECT_DELAY_S = 30.0
DEFAULT_OPERATION_TIMEOUT_S = 300.0


class SessionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


@dataclass(frozen=True)
class RemoteFileEntry:
    name: str
    is_file: bool = True


@dataclass(frozen=True)
class LocalFileEntry:
    name: str


@dataclass(frozen=True)
class PendingDownloadSet:
    """
    Remote names missing locally, in remote listing order.

    Built fresh by every reconciliation cycle and discarded once dispatched.
    """

    names: tuple[str, ...]
    remote_names: frozenset[str] = frozenset()
    local_names: frozenset[str] = frozenset()

    @classmethod
    def compute(cls, remote: list[RemoteFileEntry], local: list[LocalFileEntry]) -> PendingDownloadSet:
        remote_order: list[str] = []
        for entry in remote:
            if entry.name not in remote_order:
                remote_order.append(entry.name)
        local_names = frozenset(e.name for e in local)
        return cls(
            names=tuple(n for n in remote_order if n not in local_names),
            remote_names=frozenset(remote_order),
            local_names=local_names,
        )

    @property
    def already_synchronized(self) -> bool:
        return bool(self.remote_names) and self.remote_names == self.local_names

    def __iter__(self):
        return iter(self.names)

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, name: object) -> bool:
        return name in self.names


@dataclass(frozen=True)
class ProcessingOutcome:
    """Result of handing one downloaded file to the ingestion step."""

    file_name: str
    success: bool
    exit_code: int | None = None
    error: str | None = None


@dataclass
class CycleSummary:
    """What one reconciliation cycle did, for logs and `sftpsync once`."""

    remote_count: int = 0
    local_count: int = 0
    pending: tuple[str, ...] = ()
    downloaded: list[str] = field(default_factory=list)
    outcomes: list[ProcessingOutcome] = field(default_factory=list)
    aborted: bool = False
    error: str | None = None

    @property
    def ingested(self) -> int:
        return sum(1 for o in self.outcomes if o.success)

    @property
    def ingestion_failures(self) -> int:
        return sum(1 for o in self.outcomes if not o.success)

    def as_dict(self) -> dict[str, Any]:
        return {
            "remote_count": self.remote_count,
            "local_count": self.local_count,
            "pending": list(self.pending),
            "downloaded": list(self.downloaded),
            "ingested": self.ingested,
            "ingestion_failures": self.ingestion_failures,
            "aborted": self.aborted,
            "error": self.error,
        }


@dataclass(frozen=True)
class IngestorSpec:
    """Config-derived ingestion step spec (name + config)."""

    name: str = "noop"
    config: dict[str, Any] | None = None


class Ingestor(Protocol):
    """
    Ingestion step protocol.

    Receives the local path of a file that was just downloaded and reports
    whether it was ingested. Implementations must not raise for an ordinary
    ingestion failure; they return an unsuccessful ProcessingOutcome instead.
    """

    name: str

    async def ingest(self, path: str) -> ProcessingOutcome: ...


@dataclass(frozen=True)
class SyncSettings:
    """
    Resolved settings for one sync engine.

    Intervals are in seconds. `extension` is matched case-insensitively
    against file names on both sides.
    """

    sftp: SFTPConfig
    local_dir: str = "files"
    remote_dir: str = "/"
    extension: str = DEFAULT_EXTENSION
    reconcile_interval_s: float = DEFAULT_RECONCILE_INTERVAL_S
    reconnect_delay_s: float = DEFAULT_RECONNECT_DELAY_S
    operation_timeout_s: float = DEFAULT_OPERATION_TIMEOUT_S
    watch_local_dir: bool = True
    ingestion: IngestorSpec = field(default_factory=IngestorSpec)

    def matches(self, name: str) -> bool:
        return name.lower().endswith(self.extension.lower())

    def remote_path(self, name: str) -> str:
        return f"{self.remote_dir.rstrip('/')}/{name}"
