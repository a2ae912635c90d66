"""
Shared fakes for sync engine tests.

FakeSession stands in for SFTPSession so no network is needed.
"""

import os
from dataclasses import replace
from pathlib import Path

import pytest

from sftpsync.connections.sftp import SFTPConfig
from sftpsync.exceptions import RemoteConnectionError
from sftpsync.sync.types import ProcessingOutcome, RemoteFileEntry, SessionState, SyncSettings


class FakeSession:
    """In-memory SFTP session: a dict of remote file name -> content."""

    def __init__(
        self,
        remote: dict[str, bytes] | list[str] | None = None,
        *,
        dirs: tuple[str, ...] = (),
        fail_connect: bool = False,
        fail_list: bool = False,
        fail_download: tuple[str, ...] = (),
    ):
        if isinstance(remote, list):
            remote = {name: f"content of {name}\n".encode() for name in remote}
        self.remote = dict(remote or {})
        self.dirs = dirs
        self.fail_connect = fail_connect
        self.fail_list = fail_list
        self.fail_download = set(fail_download)
        self.state = SessionState.DISCONNECTED
        self.list_calls = 0
        self.downloads: list[str] = []
        self.closed = False

    @property
    def connected(self) -> bool:
        return self.state is SessionState.CONNECTED

    async def connect(self) -> None:
        if self.fail_connect:
            raise RemoteConnectionError("connection refused", operation="connect")
        self.state = SessionState.CONNECTED

    async def list_dir(self, remote_dir: str) -> list[RemoteFileEntry]:
        self.list_calls += 1
        if self.fail_list:
            self.state = SessionState.DISCONNECTED
            raise RemoteConnectionError("SFTP list failed: Socket is closed", operation="list")
        entries = [RemoteFileEntry(name=name, is_file=True) for name in self.remote]
        entries += [RemoteFileEntry(name=name, is_file=False) for name in self.dirs]
        return entries

    async def download(self, remote_path: str, local_path: str) -> None:
        name = os.path.basename(remote_path)
        if name in self.fail_download:
            self.state = SessionState.DISCONNECTED
            raise RemoteConnectionError(f"SFTP download failed: {name}", operation="download")
        Path(local_path).write_bytes(self.remote[name])
        self.downloads.append(remote_path)

    async def close(self) -> None:
        self.closed = True
        self.state = SessionState.DISCONNECTED


class RecordingIngestor:
    """Ingestor that records the paths it was given; names in `fail` report failure."""

    name = "recording"

    def __init__(self, fail: tuple[str, ...] = ()):
        self.fail = set(fail)
        self.calls: list[str] = []

    async def ingest(self, path: str) -> ProcessingOutcome:
        self.calls.append(path)
        name = os.path.basename(path)
        if name in self.fail:
            return ProcessingOutcome(file_name=name, success=False, exit_code=1, error="exit 1")
        return ProcessingOutcome(file_name=name, success=True, exit_code=0)

    @property
    def names(self) -> list[str]:
        return [os.path.basename(p) for p in self.calls]


@pytest.fixture
def local_dir(tmp_path):
    path = tmp_path / "files"
    path.mkdir()
    return path


@pytest.fixture
def settings(local_dir):
    return SyncSettings(
        sftp=SFTPConfig(host="sftp.example.com", username="user", password="secret"),
        local_dir=str(local_dir),
        remote_dir="/outbox",
        reconcile_interval_s=3600,
        reconnect_delay_s=0.01,
        operation_timeout_s=5,
        watch_local_dir=False,
    )


@pytest.fixture
def make_settings(settings):
    def _make(**overrides) -> SyncSettings:
        return replace(settings, **overrides)

    return _make
