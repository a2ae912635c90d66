"""
Logging configuration for sftpsync.

Every event is appended to a persistent log file and mirrored to stdout.
"""

import logging
import sys
from pathlib import Path
from typing import Any

try:
    import importlib.util

    RICH_AVAILABLE = importlib.util.find_spec("rich.logging") is not None
except Exception:
    RICH_AVAILABLE = False

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class FileFormatter(logging.Formatter):
    """Formatter for file logs - clean and parseable."""

    def __init__(self) -> None:
        super().__init__(fmt="[%(asctime)s] [%(levelname)-8s] %(name)s: %(message)s", datefmt=DATE_FORMAT)


class ConsoleFormatter(logging.Formatter):
    """Console format: "[timestamp] message", with the level for warnings and errors."""

    def __init__(self) -> None:
        super().__init__(datefmt=DATE_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        line = f"[{self.formatTime(record)}] {record.getMessage()}"
        if record.levelno >= logging.WARNING:
            line = f"[{self.formatTime(record)}] {record.levelname}: {record.getMessage()}"
        if record.exc_info and record.levelno >= logging.ERROR:
            line += "\n" + self.formatException(record.exc_info)
        return line


# Map string level names to logging constants
LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def _parse_level(level: str | int) -> int:
    """
    Parse logging level from string or int.

    Args:
        level: Logging level as string (DEBUG, INFO, etc.) or int

    Returns:
        Logging level constant
    """
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        level_upper = level.upper()
        if level_upper in LEVEL_MAP:
            return LEVEL_MAP[level_upper]
    # Default to INFO if invalid
    return logging.INFO


def setup_logging(
    level: str | int = logging.INFO,
    log_file: str | Path | None = None,
    format_string: str | None = None,
    console_enabled: bool = True,
    use_rich: bool = False,
) -> logging.Logger:
    """
    Setup logging configuration for sftpsync.

    Args:
        level: Logging level as string (DEBUG, INFO, etc.) or int (default: INFO)
        log_file: Optional file path to append logs to (default: None, console only)
        format_string: Optional custom console format string
        console_enabled: Whether to mirror logs to stdout (default: True)
        use_rich: Whether to render console logs with rich's RichHandler (default: False)

    Returns:
        Logger instance
    """
    logger = logging.getLogger("sftpsync")

    # Remove existing handlers to avoid duplicates on re-configuration
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    level_int = _parse_level(level)
    logger.setLevel(level_int)

    if console_enabled:
        if use_rich and RICH_AVAILABLE:
            from rich.console import Console
            from rich.logging import RichHandler

            logger.addHandler(
                RichHandler(
                    level=level_int,
                    console=Console(file=sys.stdout),
                    show_time=True,
                    show_path=False,
                    rich_tracebacks=True,
                    log_time_format=f"[{DATE_FORMAT}]",
                    omit_repeated_times=False,
                )
            )
        else:
            formatter: logging.Formatter = ConsoleFormatter()
            if format_string is not None:
                formatter = logging.Formatter(format_string, datefmt=DATE_FORMAT)

            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(level_int)
            console_handler.setFormatter(formatter)
            logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        # Append-only; no rotation
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(FileFormatter())
        logger.addHandler(file_handler)

    return logger


def setup_logging_from_config(config: dict[str, Any], project_dir: Path | None = None) -> logging.Logger:
    """
    Setup logging from the resolved sftpsync configuration.

    Args:
        config: Configuration dictionary with an optional 'logging' section
        project_dir: Optional project directory for resolving relative log file paths

    Returns:
        Logger instance
    """
    logging_config = config.get("logging") or {}

    level = logging_config.get("level", logging.INFO)
    format_string = logging_config.get("format")
    console_enabled = logging_config.get("console_enabled", True)
    console_type = logging_config.get("console_type", "plain")

    log_file = logging_config.get("file")
    if log_file and project_dir:
        log_file = Path(log_file)
        if not log_file.is_absolute():
            log_file = project_dir / log_file

    return setup_logging(
        level=level,
        log_file=log_file,
        format_string=format_string,
        console_enabled=console_enabled,
        use_rich=console_type == "rich",
    )


def get_logger(name: str = "sftpsync") -> logging.Logger:
    """
    Get a logger instance.

    Child loggers ("sftpsync.sync.diff", ...) propagate to the package logger,
    which owns the file and console handlers.

    Args:
        name: Logger name (default: "sftpsync")

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    logger.propagate = True
    return logger
