"""
sftpsync exception hierarchy.

All domain-specific exceptions inherit from SftpSyncError. The subclasses map
onto the error classes the sync engine reacts to differently:

Hierarchy::

    SftpSyncError
    ├── ConfigurationError     - config loading, parsing, validation
    ├── RemoteConnectionError  - connect, listing, download, timeouts (triggers reconnect)
    ├── LocalFilesystemError   - local sync directory cannot be created or listed
    └── IngestionError         - ingestion step failed for a downloaded file
"""

from __future__ import annotations


class SftpSyncError(Exception):
    """Base exception for all sftpsync errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(SftpSyncError):
    """Raised when configuration loading, parsing, or validation fails."""


# --- Remote connection -------------------------------------------------------


class RemoteConnectionError(SftpSyncError):
    """Raised for any failure attributable to the SFTP session or its transport."""

    def __init__(self, message: str, *, operation: str | None = None, cause: Exception | None = None) -> None:
        super().__init__(message, details={"operation": operation})
        self.operation = operation
        if cause is not None:
            self.__cause__ = cause


# --- Local filesystem --------------------------------------------------------


class LocalFilesystemError(SftpSyncError):
    """Raised when the local sync directory cannot be created or read."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message, details={"path": path})
        self.path = path


# --- Ingestion ---------------------------------------------------------------


class IngestionError(SftpSyncError):
    """Raised when the ingestion step fails for a downloaded file."""

    def __init__(self, file_name: str, message: str, *, exit_code: int | None = None) -> None:
        super().__init__(f"Ingestion of '{file_name}' failed: {message}", details={"file": file_name})
        self.file_name = file_name
        self.exit_code = exit_code
