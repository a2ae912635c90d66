"""
Sync engine: wires the connection manager, scheduler, diff engine, dispatch
pipeline and local observer into one long-running process.
"""

from __future__ import annotations

import asyncio
import signal

from sftpsync.exceptions import LocalFilesystemError, RemoteConnectionError
from sftpsync.ingestors.registry import resolve_ingestor
from sftpsync.sync.connection_manager import ConnectionManager, SessionFactory
from sftpsync.sync.diff import DiffEngine
from sftpsync.sync.observer import LocalDirectoryObserver
from sftpsync.sync.pipeline import DispatchPipeline
from sftpsync.sync.scheduler import ReconciliationScheduler
from sftpsync.sync.types import CycleSummary, Ingestor, SyncSettings
from sftpsync.utils.logging import get_logger

logger = get_logger("sftpsync.sync.engine")


class SyncEngine:
    def __init__(
        self,
        settings: SyncSettings,
        *,
        ingestor: Ingestor | None = None,
        session_factory: SessionFactory | None = None,
    ):
        self.settings = settings
        self.ingestor = ingestor or resolve_ingestor(settings.ingestion)
        self.manager = ConnectionManager(
            settings.sftp,
            reconnect_delay_s=settings.reconnect_delay_s,
            operation_timeout_s=settings.operation_timeout_s,
            session_factory=session_factory,
        )
        self.diff = DiffEngine(settings)
        self.pipeline = DispatchPipeline(settings, self.ingestor)
        self.scheduler = ReconciliationScheduler(self.run_cycle, settings.reconcile_interval_s)
        self.observer: LocalDirectoryObserver | None = None
        if settings.watch_local_dir:
            self.observer = LocalDirectoryObserver(settings.local_dir, settings.extension)

        self.manager.on_connected.append(self._on_connected)
        self.manager.on_disconnected.append(self.scheduler.stop)
        self._stop_requested: asyncio.Event | None = None

    def _on_connected(self) -> None:
        if self.observer is not None and not self.observer.running:
            try:
                self.observer.start()
            except OSError as e:
                logger.error(f"Could not watch local directory {self.settings.local_dir}: {e}")
        self.scheduler.start()

    async def run_cycle(self, *, reconnect_on_error: bool = True) -> CycleSummary:
        """
        Run one reconciliation cycle against the current session.

        Connection-class failures schedule a reconnect (or are re-raised when
        `reconnect_on_error` is false). Local filesystem failures abort the
        cycle without a reconnect; the next cycle tries again.
        """
        summary = CycleSummary()
        session = self.manager.session
        if session is None or not session.connected:
            logger.warning("SFTP connection not available")
            summary.aborted = True
            summary.error = "not connected"
            return summary

        try:
            pending = await self.diff.reconcile(session)
            summary.remote_count = len(pending.remote_names)
            summary.local_count = len(pending.local_names)
            summary.pending = pending.names
            await self.pipeline.dispatch(session, pending, summary)
        except RemoteConnectionError as e:
            summary.aborted = True
            summary.error = e.message
            logger.error(f"Error syncing files: {e.message}")
            if not reconnect_on_error:
                raise
            self.manager.reconnect(reason=e.message)
        except LocalFilesystemError as e:
            summary.aborted = True
            summary.error = e.message
            logger.error(f"Local directory error, skipping this cycle: {e.message}")

        if summary.downloaded or summary.aborted:
            logger.info(
                f"Cycle finished: {len(summary.downloaded)} downloaded, {summary.ingested} ingested, "
                f"{summary.ingestion_failures} failed" + (" (aborted)" if summary.aborted else "")
            )
        return summary

    async def run_forever(self) -> None:
        """Connect and keep syncing until stop() is called or SIGINT/SIGTERM arrives."""
        self._stop_requested = asyncio.Event()
        self._install_signal_handlers()
        logger.info(
            f"Starting sync {self.settings.sftp.host}:{self.settings.remote_dir} -> {self.settings.local_dir}"
        )
        try:
            await self.manager.connect()
            await self._stop_requested.wait()
        finally:
            await self.shutdown()

    async def run_once(self) -> CycleSummary:
        """
        Connect, run a single cycle and disconnect.

        Raises:
            RemoteConnectionError: connecting, listing or downloading failed
        """
        try:
            await self.manager.connect_once()
            return await self.run_cycle(reconnect_on_error=False)
        finally:
            await self.shutdown()

    def stop(self) -> None:
        if self._stop_requested is not None:
            self._stop_requested.set()

    async def shutdown(self) -> None:
        await self.scheduler.aclose()
        await self.manager.close()
        if self.observer is not None:
            self.observer.stop()
        logger.info("Sync engine stopped")

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform / not the main thread
                pass

