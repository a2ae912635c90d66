"""
Ingestion steps run on each newly downloaded file.
"""

from sftpsync.ingestors.command import CommandIngestor
from sftpsync.ingestors.csv_to_sql import CsvToSqlIngestor
from sftpsync.ingestors.noop import NoopIngestor
from sftpsync.ingestors.registry import build_default_ingestor_registry, resolve_ingestor

__all__ = [
    "CommandIngestor",
    "CsvToSqlIngestor",
    "NoopIngestor",
    "build_default_ingestor_registry",
    "resolve_ingestor",
]
