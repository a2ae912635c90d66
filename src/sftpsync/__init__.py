"""
sftpsync - keep a local directory in sync with an SFTP store and ingest new files.
"""

__version__ = "0.1.0"

from sftpsync.exceptions import (
    ConfigurationError,
    IngestionError,
    LocalFilesystemError,
    RemoteConnectionError,
    SftpSyncError,
)

__all__ = [
    "__version__",
    "ConfigurationError",
    "IngestionError",
    "LocalFilesystemError",
    "RemoteConnectionError",
    "SftpSyncError",
]
