"""
Diff engine: which remote data files are missing from the local directory.

Comparison is by file name only. A local file with the same name as a remote
file counts as synchronized whatever its content.
"""

from __future__ import annotations

import os

from aiofiles import os as aioos

from sftpsync.connections.sftp import SFTPSession
from sftpsync.exceptions import LocalFilesystemError
from sftpsync.sync.types import LocalFileEntry, PendingDownloadSet, RemoteFileEntry, SyncSettings
from sftpsync.utils.logging import get_logger

logger = get_logger("sftpsync.sync.diff")


class DiffEngine:
    def __init__(self, settings: SyncSettings):
        self.settings = settings

    async def reconcile(self, session: SFTPSession) -> PendingDownloadSet:
        """
        List both sides and compute the PendingDownloadSet.

        Raises:
            RemoteConnectionError: remote listing failed
            LocalFilesystemError: local directory exists but cannot be listed
        """
        remote = await self.list_remote(session)
        local = await self.list_local()

        logger.info(f"Remote directory: {len(remote)} file(s) | Local directory: {len(local)} file(s)")

        pending = PendingDownloadSet.compute(remote, local)
        if pending.already_synchronized:
            logger.info("All files are already synchronized")
        elif pending:
            logger.info(f"{len(pending)} file(s) pending download: {', '.join(pending.names)}")
        return pending

    async def list_remote(self, session: SFTPSession) -> list[RemoteFileEntry]:
        entries = await session.list_dir(self.settings.remote_dir)
        files = []
        for entry in entries:
            if not entry.is_file or not self.settings.matches(entry.name):
                continue
            if not is_plain_file_name(entry.name):
                logger.warning(f"Ignoring remote entry with unsafe name: {entry.name!r}")
                continue
            files.append(entry)
        return files

    async def list_local(self) -> list[LocalFileEntry]:
        local_dir = self.settings.local_dir
        if not await aioos.path.isdir(local_dir):
            return []
        try:
            names = await aioos.listdir(local_dir)
        except OSError as e:
            raise LocalFilesystemError(f"Cannot list local directory {local_dir}: {e}", path=local_dir) from e
        return [LocalFileEntry(name=n) for n in sorted(names) if self.settings.matches(n)]


def is_plain_file_name(name: str) -> bool:
    """True when `name` is a bare file name that stays inside the directory it is joined onto."""
    if not name or name in (".", "..") or "\x00" in name:
        return False
    if "/" in name or "\\" in name or os.sep in name or (os.altsep and os.altsep in name):
        return False
    return os.path.basename(name) == name
