"""Core sessionlinks data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Optional, Tuple


class Partition(str, Enum):
    """Half of the session a tab group belongs to."""

    OPEN = "open"
    CLOSED = "closed"

    @property
    def label(self) -> str:
        return "Open Windows" if self is Partition.OPEN else "Closed Windows"


# Windows carry the section of the document they were read from.
WindowOrigin = Partition


class GroupKey(NamedTuple):
    """Address of a tab group: the partition plus the index inside it."""

    partition: Partition
    index: int


@dataclass(frozen=True, slots=True)
class HistoryEntry:
    url: str
    title: str


@dataclass(frozen=True, slots=True)
class Tab:
    """A browser tab and its navigation history."""

    url: str
    title: str
    history: Tuple[HistoryEntry, ...] = ()
    index: int = 1
    pinned: bool = False
    hidden: bool = False


@dataclass(frozen=True, slots=True)
class Window:
    """A browser window, either still open or recoverable from the closed list."""

    title: str
    tabs: Tuple[Tab, ...]
    origin: WindowOrigin = WindowOrigin.OPEN
    selected: Optional[int] = None


@dataclass(frozen=True, slots=True)
class SessionTree:
    """Parsed session document, windows kept in source order."""

    windows: Tuple[Window, ...] = ()

    def partition(self, partition: Partition) -> Tuple[Window, ...]:
        return tuple(window for window in self.windows if window.origin is partition)

    @property
    def open_windows(self) -> Tuple[Window, ...]:
        return self.partition(Partition.OPEN)

    @property
    def closed_windows(self) -> Tuple[Window, ...]:
        return self.partition(Partition.CLOSED)

    @property
    def tab_count(self) -> int:
        return sum(len(window.tabs) for window in self.windows)


@dataclass(frozen=True, slots=True)
class TabGroupInfo:
    """Selectable label for one window."""

    name: str
    index: int
    tab_count: int = 0


@dataclass(frozen=True, slots=True)
class AllTabGroups:
    """Tab groups of both partitions, indexed per partition."""

    open: Tuple[TabGroupInfo, ...] = field(default_factory=tuple)
    closed: Tuple[TabGroupInfo, ...] = field(default_factory=tuple)

    def partition(self, partition: Partition) -> Tuple[TabGroupInfo, ...]:
        return self.open if partition is Partition.OPEN else self.closed

    def __len__(self) -> int:
        return len(self.open) + len(self.closed)
