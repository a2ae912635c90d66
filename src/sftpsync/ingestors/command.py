"""
Run an external command as the ingestion step.

Config:
- command: list[str] or str (required). `{path}` and `{name}` placeholders in
  any argument are replaced with the downloaded file's local path / file name.
  Without placeholders the command runs unchanged and is expected to pick its
  input from the directory itself.
- timeout_s: float (optional). The process is killed when it runs longer.
- cwd: str (optional). Working directory for the process.
- env: dict (optional). Extra environment variables, merged over os.environ.
"""

from __future__ import annotations

import asyncio
import os
import shlex
from pathlib import Path
from typing import Any

from sftpsync.exceptions import ConfigurationError
from sftpsync.sync.types import ProcessingOutcome
from sftpsync.utils.logging import get_logger

logger = get_logger("sftpsync.ingestors.command")


class CommandIngestor:
    name = "command"

    def __init__(self, config: dict[str, Any]):
        command = config.get("command")
        if isinstance(command, str):
            command = shlex.split(command)
        if not command:
            raise ConfigurationError("command ingestor requires config: command")
        self.command: list[str] = [str(part) for part in command]
        timeout = config.get("timeout_s")
        self.timeout_s: float | None = float(timeout) if timeout is not None else None
        self.cwd: str | None = config.get("cwd")
        self.env: dict[str, str] = {str(k): str(v) for k, v in (config.get("env") or {}).items()}

    def build_args(self, path: str) -> list[str]:
        name = Path(path).name
        return [part.replace("{path}", path).replace("{name}", name) for part in self.command]

    async def ingest(self, path: str) -> ProcessingOutcome:
        name = Path(path).name
        args = self.build_args(path)
        env = {**os.environ, **self.env} if self.env else None

        logger.info(f"Processing file: {name}")
        try:
            proc = await asyncio.create_subprocess_exec(*args, cwd=self.cwd, env=env)
        except OSError as e:
            logger.error(f"Could not start ingestion command for {name}: {e}")
            return ProcessingOutcome(file_name=name, success=False, error=str(e))

        try:
            exit_code = await asyncio.wait_for(proc.wait(), timeout=self.timeout_s)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.error(f"Error processing file: {name} (timed out after {self.timeout_s}s)")
            return ProcessingOutcome(file_name=name, success=False, exit_code=proc.returncode, error="timed out")

        if exit_code == 0:
            logger.info(f"File processed successfully: {name}")
            return ProcessingOutcome(file_name=name, success=True, exit_code=0)

        logger.error(f"Error processing file: {name} (code {exit_code})")
        return ProcessingOutcome(
            file_name=name,
            success=False,
            exit_code=exit_code,
            error=f"{args[0]} exited with code {exit_code}",
        )
