"""
Download & dispatch pipeline.

Pending files are handled strictly one after another, in the order the diff
engine listed them: download, then hand the downloaded path to the ingestor
and wait for it. An ingestion failure only affects its own file; a download
failure raises RemoteConnectionError (or LocalFilesystemError when the local
file cannot be written) and abandons the rest of the batch, which the next
reconciliation cycle rediscovers.
"""

from __future__ import annotations

import os

from aiofiles import os as aioos

from sftpsync.connections.sftp import SFTPSession
from sftpsync.exceptions import IngestionError, LocalFilesystemError, RemoteConnectionError
from sftpsync.sync.diff import is_plain_file_name
from sftpsync.sync.types import CycleSummary, Ingestor, PendingDownloadSet, ProcessingOutcome, SyncSettings
from sftpsync.utils.logging import get_logger

logger = get_logger("sftpsync.sync.pipeline")


class DispatchPipeline:
    def __init__(self, settings: SyncSettings, ingestor: Ingestor):
        self.settings = settings
        self.ingestor = ingestor

    async def dispatch(
        self,
        session: SFTPSession,
        pending: PendingDownloadSet,
        summary: CycleSummary | None = None,
    ) -> CycleSummary:
        """
        Download and ingest every pending file.

        Progress is recorded on `summary` as it happens, so a caller catching
        RemoteConnectionError still sees what was done before the failure.
        """
        summary = summary if summary is not None else CycleSummary(pending=tuple(pending))
        for name in pending:
            if not is_plain_file_name(name):
                logger.warning(f"Refusing to download {name!r}: not a plain file name")
                continue
            await self.ensure_local_dir()
            local_path = os.path.join(self.settings.local_dir, name)
            if not await self.download(session, name, local_path):
                continue
            summary.downloaded.append(name)
            summary.outcomes.append(await self.ingest(local_path, name))
        return summary

    async def ensure_local_dir(self) -> None:
        local_dir = self.settings.local_dir
        try:
            if await aioos.path.isdir(local_dir):
                return
            await aioos.makedirs(local_dir, exist_ok=True)
        except OSError as e:
            raise LocalFilesystemError(f"Cannot create local directory {local_dir}: {e}", path=local_dir) from e
        logger.info(f"Local directory created: {local_dir}")

    async def download(self, session: SFTPSession, name: str, local_path: str) -> bool:
        """
        Download `name` into the local directory.

        The transfer goes to a `.part` file that is renamed into place, so an
        interrupted download never leaves a file the diff engine would count
        as synchronized. Returns False when a local file of that name already
        exists; it is never overwritten.
        """
        if await aioos.path.exists(local_path):
            logger.info(f"Skipping {name}: already present locally")
            return False

        remote_path = self.settings.remote_path(name)
        tmp_path = f"{local_path}.part"
        logger.info(f"Downloading: {name}")
        try:
            await session.download(remote_path, tmp_path)
        except (RemoteConnectionError, LocalFilesystemError):
            await _remove_quietly(tmp_path)
            raise

        try:
            if await aioos.path.exists(local_path):
                logger.warning(f"{name} appeared locally during download; keeping the existing file")
                await _remove_quietly(tmp_path)
                return False
            await aioos.replace(tmp_path, local_path)
        except OSError as e:
            raise LocalFilesystemError(f"Cannot move {tmp_path} into place: {e}", path=local_path) from e

        logger.info(f"Downloaded: {name}")
        return True

    async def ingest(self, local_path: str, name: str) -> ProcessingOutcome:
        try:
            outcome = await self.ingestor.ingest(local_path)
        except IngestionError as e:
            logger.error(f"Error processing file: {name} ({e.message})")
            return ProcessingOutcome(file_name=name, success=False, exit_code=e.exit_code, error=e.message)
        except Exception as e:
            logger.error(f"Ingestor '{self.ingestor.name}' crashed on {name}: {e}", exc_info=True)
            return ProcessingOutcome(file_name=name, success=False, error=str(e))

        if not outcome.success:
            logger.warning(f"Ingestion failed for {name}; continuing with the next file")
        return outcome


async def _remove_quietly(path: str) -> None:
    try:
        await aioos.remove(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.debug(f"Could not remove partial download {path}: {e}")
