"""
Ingestor that only records the arrival of a file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from sftpsync.sync.types import ProcessingOutcome
from sftpsync.utils.logging import get_logger

logger = get_logger("sftpsync.ingestors.noop")


class NoopIngestor:
    name = "noop"

    def __init__(self, config: dict[str, Any] | None = None):
        self.config = config or {}

    async def ingest(self, path: str) -> ProcessingOutcome:
        name = Path(path).name
        logger.info(f"No ingestion step configured; keeping {name} as downloaded")
        return ProcessingOutcome(file_name=name, success=True)
