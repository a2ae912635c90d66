"""
Convert a downloaded CSV file into a multi-row INSERT statement file.

Config:
- columns: list[str] or comma-separated str (required). CSV values are mapped
  onto these columns by position; missing or empty values become NULL.
- table: str (required). Target table name.
- database: str (optional). Qualifies the table as `database.table`.
- output_path: str (optional, default: "sql.txt").
- delimiter: str (optional, default: ",").
- encoding: str (optional, default: "utf-8-sig", so a BOM is tolerated).

The first line of the CSV is a header and is skipped, as are empty lines.
Loading the statement into a database is left to a separate step.
"""

from __future__ import annotations

import asyncio
import csv
import os
from pathlib import Path
from typing import Any

from sftpsync.exceptions import ConfigurationError, IngestionError
from sftpsync.sync.types import ProcessingOutcome
from sftpsync.utils.logging import get_logger
from sftpsync.utils.sql_escape import escape_sql_value, qualified_name, validate_identifier

logger = get_logger("sftpsync.ingestors.csv_to_sql")


class CsvToSqlIngestor:
    name = "csv_to_sql"

    def __init__(self, config: dict[str, Any]):
        columns = config.get("columns") or []
        if isinstance(columns, str):
            columns = [c.strip() for c in columns.split(",") if c.strip()]
        if not columns:
            raise ConfigurationError("csv_to_sql ingestor requires config: columns")
        bad = [c for c in columns if not validate_identifier(c)]
        if bad:
            raise ConfigurationError(f"csv_to_sql: unsafe column names: {bad}")
        self.columns: list[str] = list(columns)

        table = config.get("table")
        if not table:
            raise ConfigurationError("csv_to_sql ingestor requires config: table")
        try:
            self.target = qualified_name(config.get("database"), table)
        except ValueError as e:
            raise ConfigurationError(f"csv_to_sql: {e}") from e

        self.output_path = Path(config.get("output_path") or "sql.txt")
        self.delimiter: str = config.get("delimiter") or ","
        self.encoding: str = config.get("encoding") or "utf-8-sig"

    async def ingest(self, path: str) -> ProcessingOutcome:
        name = Path(path).name
        logger.info(f"Processing file: {name}")
        try:
            row_count = await asyncio.to_thread(self.convert, path)
        except (IngestionError, OSError, csv.Error, UnicodeDecodeError) as e:
            logger.error(f"Error processing file: {name} ({e})")
            return ProcessingOutcome(file_name=name, success=False, error=str(e))

        logger.info(f"Generated {self.output_path} from {name} with {row_count} row(s)")
        return ProcessingOutcome(file_name=name, success=True, exit_code=0)

    def convert(self, path: str) -> int:
        """Write the INSERT statement for `path` to output_path; return the row count."""
        rows = self.read_rows(path)
        if not rows:
            raise IngestionError(Path(path).name, "CSV file contains no data rows")

        statement = self.build_statement(rows)
        self.output_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.output_path.with_name(self.output_path.name + ".part")
        tmp_path.write_text(statement, encoding="utf-8")
        os.replace(tmp_path, self.output_path)
        return len(rows)

    def read_rows(self, path: str) -> list[list[str | None]]:
        width = len(self.columns)
        rows: list[list[str | None]] = []
        with open(path, newline="", encoding=self.encoding) as f:
            reader = csv.reader(f, delimiter=self.delimiter)
            next(reader, None)  # header
            for record in reader:
                if not record:
                    continue
                padded = list(record[:width]) + [None] * (width - len(record))
                rows.append([v if v not in ("", None) else None for v in padded])
        return rows

    def build_statement(self, rows: list[list[str | None]]) -> str:
        values = ",\n".join("(" + ", ".join(escape_sql_value(v) for v in row) + ")" for row in rows)
        header = ", ".join(self.columns)
        return f"INSERT INTO {self.target} (\n    {header}\n)\nVALUES\n{values}\n;\n"
