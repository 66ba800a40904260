"""Background loading, preview and save tasks.

Long running steps run on daemon threads. A task never touches controller
state directly: it posts messages to an ordered :class:`Channel`, and the
controller applies them on its own thread in :meth:`SessionController.process_messages`.
Every message names the :class:`FileRecord` it was produced for, so results of
a load that has since been replaced are dropped instead of applied.
"""

from __future__ import annotations

import logging
import queue
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from sessionlinks.config import AppConfig
from sessionlinks.errors import SessionLinksError
from sessionlinks.models import AllTabGroups, Partition, SessionTree
from sessionlinks.pipeline import (
    FAILED_PREVIEW,
    FAILED_SAVE,
    STATUS_GENERATING_PREVIEW,
    STATUS_LOADED,
    STATUS_SAVED,
    STATUS_SAVING,
    FileRecord,
    Stage,
    failure_status,
)
from sessionlinks.render.formats import OutputOptions
from sessionlinks.render.links import render, render_preview
from sessionlinks.selection import TabGroupSelection
from sessionlinks.utils.files import write_to_file

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Message:
    record: FileRecord


@dataclass(frozen=True)
class StatusChanged(Message):
    text: str
    error: Optional[SessionLinksError] = None


@dataclass(frozen=True)
class RecordUpdated(Message):
    stage: Stage


@dataclass(frozen=True)
class GroupsParsed(Message):
    groups: AllTabGroups


@dataclass(frozen=True)
class PreviewReady(Message):
    preview: str
    generation: int = 0


@dataclass(frozen=True)
class LinksSaved(Message):
    path: Path
    error: Optional[SessionLinksError] = None


class Channel:
    """FIFO of messages from background tasks."""

    def __init__(self) -> None:
        self._queue: "queue.Queue[Message]" = queue.Queue()

    def send(self, message: Message) -> None:
        self._queue.put(message)

    def drain(self) -> List[Message]:
        messages: List[Message] = []
        while True:
            try:
                messages.append(self._queue.get_nowait())
            except queue.Empty:
                return messages


class MessageSender:
    """Posts messages for one record until its task is cancelled."""

    def __init__(self, channel: Channel, record: FileRecord, cancelled: threading.Event) -> None:
        self.channel = channel
        self.record = record
        self._cancelled = cancelled

    def send(self, message: Message) -> None:
        if self._cancelled.is_set():
            LOGGER.debug("Dropping %s from cancelled task", type(message).__name__)
            return
        self.channel.send(message)

    def status(self, text: str, error: Optional[SessionLinksError] = None) -> None:
        self.send(StatusChanged(self.record, text, error=error))


Job = Callable[[MessageSender], None]


class BackgroundTask(threading.Thread):
    """Thread that runs a single job for a record."""

    def __init__(self, job: Job, channel: Channel, record: FileRecord, name: str) -> None:
        super().__init__(daemon=True, name=name)
        self.job = job
        self._cancelled = threading.Event()
        self.sender = MessageSender(channel, record, self._cancelled)

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def cancel(self) -> None:
        self._cancelled.set()

    def run(self) -> None:
        try:
            self.job(self.sender)
        except Exception as exc:
            # A thread has nowhere to raise to, report through the channel instead.
            LOGGER.exception("Background task %s crashed", self.name)
            error = SessionLinksError(f"{type(exc).__name__}: {exc}")
            error.__cause__ = exc
            self.sender.status(f"Unexpected error: {exc}", error=error)


class SessionController:
    """Holds the state behind a session-links front end.

    ``load``, ``change_selection`` and ``save_links`` start background tasks;
    ``process_messages`` applies whatever they have reported so far.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        on_status: Callable[[str], None] | None = None,
    ) -> None:
        self.config = config or AppConfig()
        self.channel = Channel()
        self.on_status = on_status
        self.record: Optional[FileRecord] = None
        self.stage: Optional[Stage] = None
        self.selection = self._new_selection()
        self.preview = ""
        self.status = ""
        self.last_error: Optional[SessionLinksError] = None
        self._tasks: List[BackgroundTask] = []
        self._load_task: Optional[BackgroundTask] = None
        # Bumped per preview request; only the newest result is shown.
        self._preview_generation = 0

    def _new_selection(self) -> TabGroupSelection:
        return TabGroupSelection(fallback_to_all_open=self.config.fallback_to_all_open)

    @property
    def groups(self) -> AllTabGroups:
        return self.selection.groups

    @property
    def tree(self) -> SessionTree:
        if self.record is None:
            raise RuntimeError("no session file loaded")
        return self.record.tree

    @property
    def busy(self) -> bool:
        return any(task.is_alive() for task in self._tasks)

    def set_status(self, text: str) -> None:
        self.status = text
        LOGGER.info(text)
        if self.on_status is not None:
            self.on_status(text)

    def _spawn(self, record: FileRecord, job: Job, name: str) -> BackgroundTask:
        task = BackgroundTask(job, self.channel, record, name=name)
        self._tasks = [t for t in self._tasks if t.is_alive()]
        self._tasks.append(task)
        task.start()
        return task

    def load(self, path: Path) -> FileRecord:
        """Start loading a new file, superseding any load in flight."""
        if self._load_task is not None:
            self._load_task.cancel()

        record = FileRecord(path, config=self.config)
        self.record = record
        self.stage = None
        self.selection = self._new_selection()
        self.preview = ""
        self.last_error = None

        def job(sender: MessageSender) -> None:
            for event in record.drive():
                if event.groups is not None:
                    sender.send(RecordUpdated(record, Stage.PARSED))
                    sender.send(GroupsParsed(record, event.groups))
                    return
                sender.send(StatusChanged(record, event.status, error=event.error))
                if event.stage is not None:
                    sender.send(RecordUpdated(record, event.stage))

        self._load_task = self._spawn(record, job, name=f"load:{record.source_path.name}")
        return record

    def regenerate_preview(self) -> bool:
        """Render the text preview of the current selection in the background."""
        record = self.record
        if record is None or self.stage is not Stage.PARSED:
            return False
        groups = self.selection.groups
        options = self.selection.options.copy()
        self._preview_generation += 1
        generation = self._preview_generation
        self.set_status(STATUS_GENERATING_PREVIEW)

        def job(sender: MessageSender) -> None:
            try:
                preview = render_preview(record.tree, groups, options)
            except SessionLinksError as exc:
                sender.send(StatusChanged(record, failure_status(FAILED_PREVIEW, exc), error=exc))
                return
            sender.send(PreviewReady(record, preview, generation))

        self._spawn(record, job, name="preview")
        return True

    def change_selection(self, partition: Partition, index: int, select: bool) -> bool:
        """Select or deselect a group; regenerates the preview when anything changed."""
        changed = self.selection.change(partition, index, select)
        if changed:
            self.regenerate_preview()
        return changed

    def save_links(self, path: Path, options: OutputOptions) -> bool:
        """Render the current selection in ``options.format`` and write it to ``path``."""
        record = self.record
        if record is None or self.stage is not Stage.PARSED:
            return False
        groups = self.selection.groups
        selected = self.selection.options.copy()
        paper_size = self.config.pdf_paper_size
        target = Path(path)
        self.set_status(STATUS_SAVING)

        def job(sender: MessageSender) -> None:
            try:
                rendered = render(
                    record.tree, groups, selected, options.format, paper_size=paper_size
                )
                write_to_file(rendered, target, options)
            except SessionLinksError as exc:
                sender.send(LinksSaved(record, target, error=exc))
                return
            sender.send(LinksSaved(record, target))

        self._spawn(record, job, name="save")
        return True

    def process_messages(self) -> int:
        """Apply queued messages in order; returns how many were drained."""
        messages = self.channel.drain()
        for message in messages:
            if message.record is not self.record:
                LOGGER.debug("Ignoring %s for superseded %r", type(message).__name__, message.record)
                continue
            self._apply(message)
        return len(messages)

    def _apply(self, message: Message) -> None:
        if isinstance(message, StatusChanged):
            if message.error is not None:
                self.last_error = message.error
            self.set_status(message.text)
        elif isinstance(message, RecordUpdated):
            self.stage = message.stage
        elif isinstance(message, GroupsParsed):
            self.selection.groups = message.groups
            self.regenerate_preview()
        elif isinstance(message, PreviewReady):
            if message.generation != self._preview_generation:
                LOGGER.debug(
                    "Dropping preview %d, newer request %d pending",
                    message.generation,
                    self._preview_generation,
                )
                return
            self.preview = message.preview
            self.set_status(STATUS_LOADED)
        elif isinstance(message, LinksSaved):
            self.last_error = message.error
            if message.error is None:
                self.set_status(STATUS_SAVED)
            else:
                self.set_status(failure_status(FAILED_SAVE, message.error))

    def wait(self, timeout: float | None = None) -> None:
        """Block until every running task has finished."""
        for task in list(self._tasks):
            task.join(timeout)
        self._tasks = [t for t in self._tasks if t.is_alive()]

    def run_until_idle(self, timeout: float | None = None) -> None:
        """Wait for tasks and apply their messages until nothing is left to do."""
        while True:
            self.wait(timeout)
            if not self.process_messages() and not self.busy:
                return
