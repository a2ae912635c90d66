"""
SFTP session for the sync engine.

One SFTPSession is one live, authenticated paramiko transport + SFTP client.
Sessions are never reused after close(); the connection manager builds a new
one on every reconnect. Blocking paramiko calls run in a worker thread and are
bounded by an explicit timeout.
"""

from __future__ import annotations

import asyncio
import base64
import hashlib
import socket
import stat
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

import paramiko

from sftpsync.exceptions import LocalFilesystemError, RemoteConnectionError
from sftpsync.sync.types import RemoteFileEntry, SessionState
from sftpsync.utils.logging import get_logger

logger = get_logger("sftpsync.connections.sftp")

T = TypeVar("T")

DEFAULT_KEX_PREFERENCE: tuple[str, ...] = (
    "diffie-hellman-group14-sha256",
    "diffie-hellman-group14-sha1",
    "diffie-hellman-group1-sha1",
    "ecdh-sha2-nistp256",
    "ecdh-sha2-nistp384",
)


@dataclass(frozen=True)
class SFTPConfig:
    host: str
    port: int = 22
    username: str | None = None
    password: str | None = None
    private_key_path: str | None = None
    private_key_passphrase: str | None = None
    known_hosts_path: str | None = None
    # Trust whatever host key the server offers; the fingerprint is still logged
    accept_any_host_key: bool = True
    kex_preference: tuple[str, ...] = field(default=DEFAULT_KEX_PREFERENCE)
    connect_timeout_s: float = 15.0

    @classmethod
    def from_config(cls, cfg: dict[str, Any] | None) -> SFTPConfig:
        cfg = cfg or {}
        kex = cfg.get("kex") or cfg.get("kex_preference")
        if isinstance(kex, str):
            kex = [k.strip() for k in kex.split(",") if k.strip()]
        return cls(
            host=str(cfg.get("host") or ""),
            port=int(cfg.get("port", 22)),
            username=cfg.get("username"),
            password=cfg.get("password"),
            private_key_path=cfg.get("private_key_path"),
            private_key_passphrase=cfg.get("private_key_passphrase"),
            known_hosts_path=cfg.get("known_hosts_path"),
            accept_any_host_key=_as_bool(cfg.get("accept_any_host_key", True)),
            kex_preference=tuple(kex) if kex else DEFAULT_KEX_PREFERENCE,
            connect_timeout_s=float(cfg.get("connect_timeout_s", 15.0)),
        )


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def host_key_fingerprint(key: paramiko.PKey) -> str:
    """OpenSSH-style SHA256 fingerprint: 'SHA256:<unpadded base64>'."""
    digest = hashlib.sha256(key.asbytes()).digest()
    return "SHA256:" + base64.b64encode(digest).decode("ascii").rstrip("=")


class SFTPSession:
    """
    Live SFTP session handle.

    Any remote failure of an operation is raised as RemoteConnectionError and
    leaves the session marked as disconnected; callers hand it back to the
    connection manager to be replaced. Failures writing the local file are
    raised as LocalFilesystemError and leave the session usable.
    """

    def __init__(self, config: SFTPConfig, *, operation_timeout_s: float = 300.0):
        self.config = config
        self.operation_timeout_s = operation_timeout_s
        self.state = SessionState.DISCONNECTED
        self.host_fingerprint: str | None = None
        self._transport: paramiko.Transport | None = None
        self._client: paramiko.SFTPClient | None = None

    @property
    def connected(self) -> bool:
        return self.state is SessionState.CONNECTED

    async def connect(self) -> None:
        """Open transport, negotiate, check host identity, authenticate, open SFTP."""
        if not self.config.host:
            raise RemoteConnectionError("SFTP host is not configured", operation="connect")

        self.state = SessionState.CONNECTING
        # Handshake and auth have their own paramiko timeouts; bound the whole thing anyway
        timeout = self.config.connect_timeout_s * 3
        try:
            await asyncio.wait_for(asyncio.to_thread(self._connect_blocking), timeout=timeout)
        except Exception as e:
            self.state = SessionState.DISCONNECTED
            await asyncio.to_thread(self._close_blocking)
            raise RemoteConnectionError(
                f"Could not connect to {self.config.host}:{self.config.port}: {_describe(e)}",
                operation="connect",
                cause=e,
            ) from e
        self.state = SessionState.CONNECTED

    def _connect_blocking(self) -> None:
        cfg = self.config
        sock = socket.create_connection((cfg.host, cfg.port), timeout=cfg.connect_timeout_s)
        transport = paramiko.Transport(sock)
        self._transport = transport
        transport.banner_timeout = cfg.connect_timeout_s
        transport.auth_timeout = cfg.connect_timeout_s
        self._apply_kex_preference(transport)

        transport.start_client(timeout=cfg.connect_timeout_s)
        self._check_host_key(transport.get_remote_server_key())

        pkey = self._load_private_key()
        if pkey is not None:
            transport.auth_publickey(cfg.username or "", pkey)
        else:
            transport.auth_password(cfg.username or "", cfg.password or "")

        self._client = paramiko.SFTPClient.from_transport(transport)
        if self._client is None:
            raise paramiko.SSHException("Server refused to open an SFTP channel")

    def _apply_kex_preference(self, transport: paramiko.Transport) -> None:
        options = transport.get_security_options()
        supported = set(options.kex)
        preferred = [k for k in self.config.kex_preference if k in supported]
        if not preferred:
            logger.warning("None of the preferred key-exchange algorithms are supported locally; using defaults")
            return
        dropped = [k for k in self.config.kex_preference if k not in supported]
        if dropped:
            logger.debug(f"Key-exchange algorithms not supported locally: {dropped}")
        options.kex = preferred

    def _check_host_key(self, key: paramiko.PKey) -> None:
        cfg = self.config
        self.host_fingerprint = host_key_fingerprint(key)
        logger.info(f"Host fingerprint: {key.get_name()} {self.host_fingerprint}")

        if cfg.accept_any_host_key:
            logger.warning(f"Host key verification disabled; accepting key offered by {cfg.host}")
            return
        if not cfg.known_hosts_path:
            raise paramiko.SSHException("accept_any_host_key is false but no known_hosts_path is configured")

        lookup = cfg.host if cfg.port == 22 else f"[{cfg.host}]:{cfg.port}"
        known = paramiko.HostKeys(cfg.known_hosts_path)
        if not known.check(lookup, key):
            raise paramiko.BadHostKeyException(
                cfg.host, key, (known.lookup(lookup) or {}).get(key.get_name(), key)
            )

    def _load_private_key(self) -> paramiko.PKey | None:
        cfg = self.config
        if not cfg.private_key_path:
            return None
        # Try common key types; paramiko will raise if incompatible.
        try:
            return paramiko.RSAKey.from_private_key_file(cfg.private_key_path, password=cfg.private_key_passphrase)
        except paramiko.SSHException:
            return paramiko.Ed25519Key.from_private_key_file(cfg.private_key_path, password=cfg.private_key_passphrase)

    async def list_dir(self, remote_dir: str) -> list[RemoteFileEntry]:
        """List a remote directory as RemoteFileEntry items, in server order."""
        attrs = await self._run("list", lambda client: client.listdir_attr(remote_dir))
        entries = []
        for attr in attrs:
            # paramiko SFTPAttributes: st_mode encodes file type bits
            mode = getattr(attr, "st_mode", None) or 0
            entries.append(RemoteFileEntry(name=attr.filename, is_file=not stat.S_ISDIR(mode)))
        return entries

    async def download(self, remote_path: str, local_path: str) -> None:
        """
        Copy `remote_path` to `local_path`.

        Raises:
            RemoteConnectionError: the transfer failed on the SFTP side
            LocalFilesystemError: `local_path` could not be created or written;
                the session stays connected
        """
        await self._run("download", lambda client: _fetch(client, remote_path, local_path))

    async def _run(self, operation: str, func: Callable[[paramiko.SFTPClient], T]) -> T:
        client = self._client
        if client is None or not self.connected:
            raise RemoteConnectionError(f"SFTP session is not connected ({operation})", operation=operation)
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, client), timeout=self.operation_timeout_s)
        except LocalFilesystemError:
            raise
        except Exception as e:
            self.state = SessionState.DISCONNECTED
            raise RemoteConnectionError(f"SFTP {operation} failed: {_describe(e)}", operation=operation, cause=e) from e

    async def close(self) -> None:
        """Close SFTP client + underlying transport."""
        self.state = SessionState.DISCONNECTED
        await asyncio.to_thread(self._close_blocking)

    def _close_blocking(self) -> None:
        try:
            if self._client is not None:
                self._client.close()
        finally:
            self._client = None
        try:
            if self._transport is not None:
                self._transport.close()
        finally:
            self._transport = None


class _LocalWriter:
    """File wrapper that reports write failures as local, not remote, errors."""

    def __init__(self, fh: Any, path: str):
        self._fh = fh
        self._path = path

    def write(self, data: bytes) -> int:
        try:
            return self._fh.write(data)
        except OSError as e:
            raise LocalFilesystemError(f"Cannot write {self._path}: {e}", path=self._path) from e


def _fetch(client: paramiko.SFTPClient, remote_path: str, local_path: str) -> None:
    # Same as SFTPClient.get, but local open/write/close errors stay distinguishable
    try:
        fh = open(local_path, "wb")
    except OSError as e:
        raise LocalFilesystemError(f"Cannot create {local_path}: {e}", path=local_path) from e
    try:
        size = client.getfo(remote_path, _LocalWriter(fh, local_path))
    finally:
        try:
            fh.close()
        except OSError as e:
            raise LocalFilesystemError(f"Cannot write {local_path}: {e}", path=local_path) from e
    expected = client.stat(remote_path).st_size
    if expected is not None and size != expected:
        raise OSError(f"size mismatch in get! {size} != {expected}")


def _describe(e: BaseException) -> str:
    if isinstance(e, (asyncio.TimeoutError, TimeoutError, socket.timeout)) and not str(e):
        return "timed out"
    return str(e) or type(e).__name__
