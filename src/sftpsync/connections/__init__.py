"""
Remote connections.
"""

from sftpsync.connections.sftp import SFTPConfig, SFTPSession

__all__ = ["SFTPConfig", "SFTPSession"]
