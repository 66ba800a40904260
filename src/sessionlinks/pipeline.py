"""Staged loading of a session-store file."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional, Union

from sessionlinks.config import AppConfig
from sessionlinks.container.mozlz4 import decode
from sessionlinks.errors import DecodeError, ParseError, ReadError, SessionLinksError
from sessionlinks.models import AllTabGroups, SessionTree
from sessionlinks.session.groups import extract
from sessionlinks.session.parser import parse
from sessionlinks.utils.files import read_input

LOGGER = logging.getLogger(__name__)

STATUS_READING = "Reading input file"
STATUS_DECOMPRESSING = "Decompressing data"
STATUS_PARSING = "Parsing session data"
STATUS_PARSED = "Parsed session data"
STATUS_GENERATING_PREVIEW = "Generating preview"
STATUS_LOADED = "Successfully loaded session data"
STATUS_SAVING = "Saving links to file"
STATUS_SAVED = "Successfully saved links to a file"

FAILED_READ = "Failed to read file"
FAILED_DECOMPRESS = "Failed to decompress data"
FAILED_PARSE = "Failed to parse session data"
FAILED_PREVIEW = "Failed to generate preview"
FAILED_SAVE = "Failed to save links to file"


def failure_status(prefix: str, error: BaseException) -> str:
    return f"{prefix}: {error}"


class Stage(str, Enum):
    RAW = "raw"
    DECOMPRESSED = "decompressed"
    PARSED = "parsed"


@dataclass(frozen=True, slots=True)
class PipelineEvent:
    """Progress report emitted while driving a :class:`FileRecord`."""

    status: str
    stage: Optional[Stage] = None
    groups: Optional[AllTabGroups] = None
    error: Optional[SessionLinksError] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class FileRecord:
    """One loaded input file and the furthest stage it has reached.

    Only the payload of the current stage is kept: raw bytes, then
    decompressed bytes, then the parsed tree. Stages never move backwards;
    loading another file means creating another record.
    """

    def __init__(self, source_path: Path, *, config: AppConfig | None = None) -> None:
        self.source_path = Path(source_path)
        self.config = config or AppConfig()
        self._stage: Optional[Stage] = None
        self._data: Union[bytes, SessionTree, None] = None
        self.groups: Optional[AllTabGroups] = None

    def __repr__(self) -> str:
        stage = self._stage.value if self._stage else "unloaded"
        return f"FileRecord({str(self.source_path)!r}, stage={stage})"

    @property
    def stage(self) -> Optional[Stage]:
        return self._stage

    @property
    def data(self) -> Union[bytes, SessionTree, None]:
        return self._data

    @property
    def payload(self) -> bytes:
        """Raw or decompressed bytes of a record that has not been parsed yet."""
        if not isinstance(self._data, bytes):
            raise RuntimeError(f"{self!r} holds no byte payload")
        return self._data

    @property
    def tree(self) -> SessionTree:
        if self._stage is not Stage.PARSED or not isinstance(self._data, SessionTree):
            raise RuntimeError(f"{self!r} has not been parsed yet")
        return self._data

    def load(self) -> Stage:
        """Read the file from disk into the RAW stage."""
        LOGGER.info("Reading %s", self.source_path)
        self._data = read_input(self.source_path)
        self._stage = Stage.RAW
        return self._stage

    def advance(self) -> Stage:
        """Run the next transition.

        On failure the exception propagates and the record stays at its
        current stage, so the call can be retried.
        """
        if self._stage is None or self._data is None:
            raise RuntimeError("stage advanced while no data present")

        if self._stage is Stage.RAW:
            self._data = decode(self.payload, max_ratio=self.config.max_expansion_ratio)
            self._stage = Stage.DECOMPRESSED
            LOGGER.debug("Decompressed %s to %d bytes", self.source_path, len(self._data))
        elif self._stage is Stage.DECOMPRESSED:
            tree = parse(self.payload)
            self.groups = extract(tree, name_template=self.config.window_name_template)
            self._data = tree
            self._stage = Stage.PARSED
        return self._stage

    def drive(self) -> Iterator[PipelineEvent]:
        """Advance until parsed, yielding a status before each step.

        The last event either carries the tab groups or the error that
        stopped the pipeline.
        """
        if self._stage is None:
            yield PipelineEvent(STATUS_READING)
            try:
                self.load()
            except ReadError as exc:
                LOGGER.error("Failed to read %s: %s", self.source_path, exc)
                yield PipelineEvent(failure_status(FAILED_READ, exc), error=exc)
                return

        while True:
            stage = self._stage
            if stage is Stage.PARSED:
                yield PipelineEvent(STATUS_PARSED, stage=stage, groups=self.groups)
                return

            if stage is Stage.RAW:
                status, prefix, errors = STATUS_DECOMPRESSING, FAILED_DECOMPRESS, DecodeError
            else:
                status, prefix, errors = STATUS_PARSING, FAILED_PARSE, ParseError

            yield PipelineEvent(status, stage=stage)
            try:
                self.advance()
            except errors as exc:
                LOGGER.error("%s for %s: %s", prefix, self.source_path, exc)
                yield PipelineEvent(failure_status(prefix, exc), stage=stage, error=exc)
                return
