"""
Local directory observer.

Logs data files that show up in the local sync directory after start-up,
whether written by the engine or dropped there by someone else. It only logs;
downloads and ingestion are driven by the reconciliation cycle.
"""

from __future__ import annotations

import os

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from sftpsync.utils.logging import get_logger

logger = get_logger("sftpsync.sync.observer")


class NewFileHandler(FileSystemEventHandler):
    def __init__(self, extension: str):
        super().__init__()
        self.extension = extension.lower()

    def on_created(self, event: FileSystemEvent) -> None:
        if event.is_directory:
            return
        self._report(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Downloads land as "<name>.part" and are renamed into place
        if event.is_directory:
            return
        self._report(event.dest_path)

    def _report(self, path: str | bytes) -> None:
        name = os.path.basename(os.fsdecode(path))
        if name.lower().endswith(self.extension):
            logger.info(f"New file detected: {name}")


class LocalDirectoryObserver:
    """Non-recursive watchdog observer over the local sync directory."""

    def __init__(self, directory: str, extension: str):
        self.directory = directory
        self.extension = extension
        self._observer: Observer | None = None

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> None:
        if self._observer is not None:
            return
        os.makedirs(self.directory, exist_ok=True)
        observer = Observer()
        observer.schedule(NewFileHandler(self.extension), self.directory, recursive=False)
        observer.daemon = True
        observer.start()
        self._observer = observer
        logger.info(f"Watching local directory: {self.directory}")

    def stop(self) -> None:
        observer = self._observer
        self._observer = None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout=5)
