"""
Ingestor registry.

Resolves the `ingestion: {name, config}` section into a concrete Ingestor.
"""

from __future__ import annotations

from typing import Any, Callable

from sftpsync.exceptions import ConfigurationError
from sftpsync.sync.types import Ingestor, IngestorSpec
from sftpsync.utils.logging import get_logger

logger = get_logger("sftpsync.ingestors.registry")

IngestorFactory = Callable[[dict[str, Any]], Ingestor]


def build_default_ingestor_registry() -> dict[str, IngestorFactory]:
    """
    Build registry of built-in ingestors.
    """
    from sftpsync.ingestors.command import CommandIngestor
    from sftpsync.ingestors.csv_to_sql import CsvToSqlIngestor
    from sftpsync.ingestors.noop import NoopIngestor

    return {
        CommandIngestor.name: CommandIngestor,
        CsvToSqlIngestor.name: CsvToSqlIngestor,
        NoopIngestor.name: NoopIngestor,
    }


def resolve_ingestor(
    spec: IngestorSpec | None,
    *,
    registry: dict[str, IngestorFactory] | None = None,
) -> Ingestor:
    """
    Resolve an ingestor spec into a configured Ingestor instance.
    """
    spec = spec or IngestorSpec()
    registry = registry or build_default_ingestor_registry()
    factory = registry.get(spec.name)
    if factory is None:
        raise ConfigurationError(f"Unknown ingestor '{spec.name}'. Available: {sorted(registry.keys())}")
    ingestor = factory(dict(spec.config or {}))
    logger.debug(f"Using ingestor '{spec.name}'")
    return ingestor
