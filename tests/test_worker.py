"""Tests for background tasks and the session controller."""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Any, List
from unittest.mock import patch

import pytest

from conftest import make_session, make_tab, session_bytes
from sessionlinks.config import AppConfig
from sessionlinks.container.mozlz4 import encode
from sessionlinks.errors import BadMagicError, OutputExistsError, SessionLinksError
from sessionlinks.models import Partition
from sessionlinks.pipeline import (
    FAILED_DECOMPRESS,
    FAILED_SAVE,
    STATUS_DECOMPRESSING,
    STATUS_GENERATING_PREVIEW,
    STATUS_LOADED,
    STATUS_PARSING,
    STATUS_READING,
    STATUS_SAVED,
    FileRecord,
    Stage,
)
from sessionlinks.render.formats import FormatInfo, OutputOptions
from sessionlinks.render.links import render_preview
from sessionlinks.worker import (
    BackgroundTask,
    Channel,
    MessageSender,
    StatusChanged,
    SessionController,
)

TIMEOUT = 10.0


@pytest.fixture
def statuses() -> List[str]:
    return []


@pytest.fixture
def controller(statuses: List[str]) -> SessionController:
    return SessionController(on_status=statuses.append)


@pytest.fixture
def loaded(controller: SessionController, session_file: Path) -> SessionController:
    controller.load(session_file)
    controller.run_until_idle(TIMEOUT)
    return controller


class TestChannel:
    """Test Channel and MessageSender."""

    def test_fifo(self, tmp_path: Path) -> None:
        record = FileRecord(tmp_path / "a")
        channel = Channel()
        for text in ("one", "two", "three"):
            channel.send(StatusChanged(record, text))
        assert [m.text for m in channel.drain()] == ["one", "two", "three"]
        assert channel.drain() == []

    def test_cancelled_sender_drops_messages(self, tmp_path: Path) -> None:
        channel = Channel()
        cancelled = threading.Event()
        sender = MessageSender(channel, FileRecord(tmp_path / "a"), cancelled)

        sender.status("kept")
        cancelled.set()
        sender.status("dropped")

        assert [m.text for m in channel.drain()] == ["kept"]


class TestBackgroundTask:
    """Test BackgroundTask error reporting."""

    def test_crash_reported_as_status(self, tmp_path: Path) -> None:
        def job(sender: MessageSender) -> None:
            raise ValueError("boom")

        channel = Channel()
        task = BackgroundTask(job, channel, FileRecord(tmp_path / "a"), name="crash")
        task.start()
        task.join(TIMEOUT)

        messages = channel.drain()
        assert len(messages) == 1
        assert messages[0].text == "Unexpected error: boom"
        assert isinstance(messages[0].error, SessionLinksError)
        assert isinstance(messages[0].error.__cause__, ValueError)

    def test_crash_sets_last_error(self, loaded: SessionController) -> None:
        with patch("sessionlinks.worker.render_preview", side_effect=RuntimeError("broken")):
            loaded.change_selection(Partition.OPEN, 1, True)
            loaded.run_until_idle(TIMEOUT)

        assert loaded.last_error is not None
        assert loaded.status == "Unexpected error: broken"

    def test_cancel(self, tmp_path: Path) -> None:
        task = BackgroundTask(lambda sender: None, Channel(), FileRecord(tmp_path / "a"), name="t")
        assert task.daemon
        assert not task.cancelled
        task.cancel()
        assert task.cancelled


class TestLoad:
    """Test SessionController.load."""

    def test_status_sequence(self, loaded: SessionController, statuses: List[str]) -> None:
        assert statuses == [
            STATUS_READING,
            STATUS_DECOMPRESSING,
            STATUS_PARSING,
            STATUS_GENERATING_PREVIEW,
            STATUS_LOADED,
        ]
        assert loaded.stage is Stage.PARSED
        assert loaded.last_error is None
        assert not loaded.busy

    def test_groups_and_preview(self, loaded: SessionController) -> None:
        assert [g.name for g in loaded.groups.open] == ["Python docs", "Hacker News", "Window 3"]
        assert "Open Windows" in loaded.preview
        assert "Hacker News - https://news.ycombinator.com/" in loaded.preview
        assert "Closed Windows" not in loaded.preview

    def test_bad_magic(self, controller: SessionController, tmp_path: Path) -> None:
        path = tmp_path / "plain.json"
        path.write_bytes(b'{"windows": []}')

        controller.load(path)
        controller.run_until_idle(TIMEOUT)

        assert isinstance(controller.last_error, BadMagicError)
        assert controller.status.startswith(FAILED_DECOMPRESS)
        assert controller.stage is Stage.RAW
        assert controller.preview == ""

    def test_superseded_load_is_ignored(
        self, controller: SessionController, session_file: Path, tmp_path: Path
    ) -> None:
        other = tmp_path / "other.jsonlz4"
        other.write_bytes(
            encode(session_bytes(make_session([{"tabs": [make_tab("https://b.test/", "Bee")]}])))
        )

        first = controller.load(session_file)
        second = controller.load(other)
        controller.run_until_idle(TIMEOUT)

        assert first is not second
        assert controller.record is second
        assert [g.name for g in controller.groups.open] == ["Bee"]
        assert "Bee - https://b.test/" in controller.preview

    def test_foreign_messages_ignored(self, loaded: SessionController, tmp_path: Path) -> None:
        loaded.channel.send(StatusChanged(FileRecord(tmp_path / "stale"), "stale status"))
        assert loaded.process_messages() == 1
        assert loaded.status == STATUS_LOADED


class TestSelection:
    """Test selection changes on a loaded session."""

    def test_change_regenerates_preview(self, loaded: SessionController) -> None:
        assert loaded.change_selection(Partition.CLOSED, 0, True) is True
        loaded.run_until_idle(TIMEOUT)

        assert "Closed Windows" in loaded.preview
        assert "LZ4 - Wikipedia" in loaded.preview
        assert "Hacker News" not in loaded.preview
        assert loaded.status == STATUS_LOADED

    def test_slow_older_preview_does_not_overwrite_newer(self, loaded: SessionController) -> None:
        calls: List[int] = []

        def slow_first(*args: Any) -> str:
            calls.append(1)
            if len(calls) == 1:
                time.sleep(0.5)
            return render_preview(*args)

        with patch("sessionlinks.worker.render_preview", side_effect=slow_first):
            loaded.change_selection(Partition.OPEN, 0, True)
            loaded.change_selection(Partition.OPEN, 1, True)
            loaded.run_until_idle(TIMEOUT)

        assert len(calls) == 2
        assert loaded.selection.options.open_group_indexes == {0, 1}
        assert "Python docs" in loaded.preview
        assert "Hacker News" in loaded.preview
        assert loaded.status == STATUS_LOADED

    def test_unchanged_selection(self, loaded: SessionController) -> None:
        assert loaded.change_selection(Partition.OPEN, 0, False) is False
        assert not loaded.busy

    def test_regenerate_before_load(self, controller: SessionController) -> None:
        assert controller.regenerate_preview() is False
        with pytest.raises(RuntimeError):
            controller.tree


class TestSaveLinks:
    """Test SessionController.save_links."""

    def test_save_markdown(self, loaded: SessionController, tmp_path: Path) -> None:
        target = tmp_path / "links.md"
        assert loaded.save_links(target, OutputOptions(format=FormatInfo.MARKDOWN))
        loaded.run_until_idle(TIMEOUT)

        assert loaded.status == STATUS_SAVED
        assert loaded.last_error is None
        assert "[Python docs](https://docs.python.org/3/)" in target.read_text(encoding="utf-8")

    def test_save_existing_without_overwrite(
        self, loaded: SessionController, tmp_path: Path
    ) -> None:
        target = tmp_path / "links.txt"
        target.write_text("keep")

        loaded.save_links(target, OutputOptions(format=FormatInfo.TEXT))
        loaded.run_until_idle(TIMEOUT)

        assert isinstance(loaded.last_error, OutputExistsError)
        assert loaded.status.startswith(FAILED_SAVE)
        assert target.read_text() == "keep"

    def test_save_pdf_uses_paper_size(self, session_file: Path, tmp_path: Path) -> None:
        controller = SessionController(AppConfig(pdf_paper_size="letter"))
        controller.load(session_file)
        controller.run_until_idle(TIMEOUT)

        target = tmp_path / "links.pdf"
        controller.save_links(target, OutputOptions(format=FormatInfo.PDF))
        controller.run_until_idle(TIMEOUT)

        assert controller.status == STATUS_SAVED
        assert target.read_bytes().startswith(b"%PDF")

    def test_save_before_load(self, controller: SessionController, tmp_path: Path) -> None:
        assert controller.save_links(tmp_path / "x.txt", OutputOptions()) is False
