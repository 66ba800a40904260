"""Turn parsed windows into selectable tab groups."""

from __future__ import annotations

from typing import Iterable, Tuple

from sessionlinks.models import AllTabGroups, Partition, SessionTree, TabGroupInfo, Window
from sessionlinks.utils.text import collapse_whitespace

DEFAULT_NAME_TEMPLATE = "Window {number}"


def group_name(window: Window, index: int, template: str = DEFAULT_NAME_TEMPLATE) -> str:
    """Window title, or the template filled with the 1-based position."""
    title = collapse_whitespace(window.title)
    return title or template.format(number=index + 1)


def _groups(windows: Iterable[Window], template: str) -> Tuple[TabGroupInfo, ...]:
    return tuple(
        TabGroupInfo(name=group_name(window, index, template), index=index, tab_count=len(window.tabs))
        for index, window in enumerate(windows)
    )


def extract(tree: SessionTree, *, name_template: str = DEFAULT_NAME_TEMPLATE) -> AllTabGroups:
    """List the open and closed windows of ``tree`` as tab groups."""
    return AllTabGroups(
        open=_groups(tree.partition(Partition.OPEN), name_template),
        closed=_groups(tree.partition(Partition.CLOSED), name_template),
    )
