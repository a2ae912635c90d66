"""
Tests for the diff engine and PendingDownloadSet.
"""

import logging

import pytest
from conftest import FakeSession

from sftpsync.exceptions import RemoteConnectionError
from sftpsync.sync.diff import DiffEngine, is_plain_file_name
from sftpsync.sync.types import LocalFileEntry, PendingDownloadSet, RemoteFileEntry


class TestPendingDownloadSet:
    """Tests for the pure set difference."""

    def test_remote_minus_local(self):
        pending = PendingDownloadSet.compute(
            [RemoteFileEntry("a.csv"), RemoteFileEntry("b.csv"), RemoteFileEntry("c.csv")],
            [LocalFileEntry("b.csv")],
        )
        assert pending.names == ("a.csv", "c.csv")
        assert "b.csv" not in pending
        assert len(pending) == 2

    def test_keeps_remote_listing_order(self):
        pending = PendingDownloadSet.compute(
            [RemoteFileEntry("z.csv"), RemoteFileEntry("a.csv"), RemoteFileEntry("m.csv")],
            [],
        )
        assert list(pending) == ["z.csv", "a.csv", "m.csv"]

    def test_local_only_files_are_ignored(self):
        pending = PendingDownloadSet.compute([RemoteFileEntry("a.csv")], [LocalFileEntry("local.csv")])
        assert pending.names == ("a.csv",)
        assert pending.already_synchronized is False

    def test_already_synchronized_requires_equal_non_empty_sets(self):
        same = PendingDownloadSet.compute([RemoteFileEntry("a.csv")], [LocalFileEntry("a.csv")])
        assert same.already_synchronized is True

        empty = PendingDownloadSet.compute([], [])
        assert empty.already_synchronized is False
        assert len(empty) == 0

        superset = PendingDownloadSet.compute([RemoteFileEntry("a.csv")], [LocalFileEntry("a.csv"), LocalFileEntry("x.csv")])
        assert len(superset) == 0
        assert superset.already_synchronized is False

    def test_duplicate_remote_names_listed_once(self):
        pending = PendingDownloadSet.compute([RemoteFileEntry("a.csv"), RemoteFileEntry("a.csv")], [])
        assert pending.names == ("a.csv",)


class TestDiffEngine:
    """Tests for DiffEngine.reconcile against a fake session."""

    @pytest.mark.asyncio
    async def test_missing_file_is_pending(self, settings, local_dir):
        (local_dir / "a.csv").write_text("old")
        session = FakeSession(["a.csv", "b.csv"])
        await session.connect()

        pending = await DiffEngine(settings).reconcile(session)

        assert pending.names == ("b.csv",)

    @pytest.mark.asyncio
    async def test_same_name_counts_as_synchronized_regardless_of_content(self, settings, local_dir):
        (local_dir / "a.csv").write_text("completely different content")
        session = FakeSession({"a.csv": b"remote content"})
        await session.connect()

        pending = await DiffEngine(settings).reconcile(session)

        assert len(pending) == 0

    @pytest.mark.asyncio
    async def test_filters_extension_case_insensitively(self, settings, local_dir):
        (local_dir / "notes.txt").write_text("x")
        session = FakeSession(["REPORT.CSV", "readme.txt", "data.csv.bak", "b.csv"])
        await session.connect()

        pending = await DiffEngine(settings).reconcile(session)

        assert pending.names == ("REPORT.CSV", "b.csv")
        assert pending.local_names == frozenset()

    @pytest.mark.asyncio
    async def test_remote_directories_are_skipped(self, settings):
        session = FakeSession(["a.csv"], dirs=("archive.csv",))
        await session.connect()

        pending = await DiffEngine(settings).reconcile(session)

        assert pending.names == ("a.csv",)

    @pytest.mark.asyncio
    async def test_names_escaping_local_dir_are_ignored(self, settings, caplog):
        session = FakeSession(["../escaped.csv", "sub/x.csv", "..\\win.csv", "nul\x00.csv", "ok.csv"])
        await session.connect()

        with caplog.at_level(logging.WARNING, logger="sftpsync"):
            pending = await DiffEngine(settings).reconcile(session)

        assert pending.names == ("ok.csv",)
        assert pending.remote_names == frozenset({"ok.csv"})
        assert caplog.text.count("Ignoring remote entry with unsafe name") == 4

    @pytest.mark.parametrize(
        "name, expected",
        [("a.csv", True), ("..", False), (".", False), ("", False), ("../a.csv", False), ("/etc/a.csv", False)],
    )
    def test_is_plain_file_name(self, name, expected):
        assert is_plain_file_name(name) is expected

    @pytest.mark.asyncio
    async def test_missing_local_dir_is_treated_as_empty(self, make_settings, tmp_path):
        settings = make_settings(local_dir=str(tmp_path / "does-not-exist"))
        session = FakeSession(["a.csv"])
        await session.connect()

        pending = await DiffEngine(settings).reconcile(session)

        assert pending.names == ("a.csv",)

    @pytest.mark.asyncio
    async def test_logs_counts_every_cycle(self, settings, local_dir, caplog):
        (local_dir / "a.csv").write_text("x")
        session = FakeSession(["a.csv", "b.csv"])
        await session.connect()

        with caplog.at_level(logging.INFO, logger="sftpsync"):
            await DiffEngine(settings).reconcile(session)

        assert "Remote directory: 2 file(s) | Local directory: 1 file(s)" in caplog.text

    @pytest.mark.asyncio
    async def test_second_run_without_changes_reports_synchronized(self, settings, local_dir, caplog):
        (local_dir / "a.csv").write_text("x")
        session = FakeSession(["a.csv"])
        await session.connect()
        engine = DiffEngine(settings)

        with caplog.at_level(logging.INFO, logger="sftpsync"):
            first = await engine.reconcile(session)
            second = await engine.reconcile(session)

        assert len(first) == 0
        assert len(second) == 0
        assert caplog.text.count("All files are already synchronized") == 2

    @pytest.mark.asyncio
    async def test_listing_failure_is_connection_class(self, settings):
        session = FakeSession(["a.csv"], fail_list=True)
        await session.connect()

        with pytest.raises(RemoteConnectionError) as exc_info:
            await DiffEngine(settings).reconcile(session)

        assert exc_info.value.operation == "list"
