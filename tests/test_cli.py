"""
Tests for CLI commands.

Uses typer's CliRunner to test CLI commands without a real SFTP server.
"""

import logging
import os
import socket

import pytest
from typer.testing import CliRunner

from sftpsync.cli.config import mask_secrets
from sftpsync.cli.main import app
from sftpsync.config.resolver import ENV_OVERRIDES

runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated(monkeypatch):
    for var in ENV_OVERRIDES:
        monkeypatch.delenv(var, raising=False)
    yield
    for var in ENV_OVERRIDES:
        os.environ.pop(var, None)
    logger = logging.getLogger("sftpsync")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


class TestVersion:
    """Tests for --version flag."""

    def test_version_flag(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "sftpsync version" in result.output

    def test_version_short_flag(self):
        result = runner.invoke(app, ["-v"])
        assert result.exit_code == 0
        assert "sftpsync version" in result.output


class TestHelp:
    """Tests for help output."""

    def test_no_args_shows_help(self):
        result = runner.invoke(app, [])
        assert result.exit_code == 0
        assert "sftpsync" in result.output.lower()

    @pytest.mark.parametrize("command", ["run", "once", "config"])
    def test_subcommand_help(self, command):
        result = runner.invoke(app, [command, "--help"])
        assert result.exit_code == 0
        assert "--project-dir" in result.output


class TestConfigCommand:
    def test_prints_masked_config(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SFTP_HOST", "sftp.example.com")
        monkeypatch.setenv("SFTP_PASSWORD", "s3cret")

        result = runner.invoke(app, ["config", "-d", str(tmp_path)])

        assert result.exit_code == 0
        assert "sftp.example.com" in result.output
        assert "****" in result.output
        assert "s3cret" not in result.output

    def test_check_fails_without_host(self, tmp_path):
        result = runner.invoke(app, ["config", "-d", str(tmp_path), "--check"])
        assert result.exit_code == 1

    def test_check_passes(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SFTP_HOST", "sftp.example.com")

        result = runner.invoke(app, ["config", "-d", str(tmp_path), "--check"])

        assert result.exit_code == 0
        assert "Configuration is valid" in result.output

    def test_broken_yaml_exits_2(self, tmp_path):
        (tmp_path / "sftpsync.yaml").write_text("sftp: [\n")

        result = runner.invoke(app, ["config", "-d", str(tmp_path)])

        assert result.exit_code == 2

    def test_mask_secrets_nested(self):
        masked = mask_secrets({"sftp": {"password": "x", "private_key_passphrase": None, "host": "h"}, "l": [{"password": "y"}]})
        assert masked == {"sftp": {"password": "****", "private_key_passphrase": None, "host": "h"}, "l": [{"password": "****"}]}


class TestOnceCommand:
    def test_invalid_config_exits_2(self, tmp_path):
        result = runner.invoke(app, ["once", "-d", str(tmp_path)])
        assert result.exit_code == 2

    def test_invalid_ingestion_config_exits_2(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SFTP_HOST", "sftp.example.com")
        (tmp_path / "sftpsync.yaml").write_text("ingestion:\n  name: csv_to_sql\n")

        result = runner.invoke(app, ["once", "-d", str(tmp_path)])

        assert result.exit_code == 2
        assert "Configuration error" in result.output
        assert "requires config: columns" in result.output

    def test_unknown_ingestor_exits_2(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SFTP_HOST", "sftp.example.com")
        (tmp_path / "sftpsync.yaml").write_text("ingestion:\n  name: sqlserver\n")

        result = runner.invoke(app, ["run", "-d", str(tmp_path)])

        assert result.exit_code == 2
        assert "Unknown ingestor" in result.output

    def test_connection_failure_exits_1(self, tmp_path, monkeypatch):
        with socket.socket() as s:
            s.bind(("127.0.0.1", 0))
            port = s.getsockname()[1]
        monkeypatch.setenv("SFTP_HOST", "127.0.0.1")
        monkeypatch.setenv("SFTP_PORT", str(port))
        (tmp_path / "sftpsync.yaml").write_text("sftp:\n  connect_timeout_s: 2\n")

        result = runner.invoke(app, ["once", "-d", str(tmp_path)])

        assert result.exit_code == 1
        assert (tmp_path / "log.txt").exists()
