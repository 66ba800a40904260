"""Build a :class:`SessionTree` from decompressed session-store JSON.

Only the fields needed to list links are read. Unknown fields are ignored and
optional ones fall back to defaults, so newer and older Firefox versions load
alike. Relevant shape::

    {
      "windows": [{"tabs": [...], "selected": 1, ...}],
      "_closedWindows": [{"tabs": [...], "title": "...", ...}]
    }

    tab   = {"entries": [entry, ...], "index": 1, "pinned": false, "hidden": false}
    entry = {"url": "...", "title": "..."}
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

from sessionlinks.errors import MalformedSessionError, MissingFieldError
from sessionlinks.models import HistoryEntry, SessionTree, Tab, Window, WindowOrigin
from sessionlinks.utils.text import collapse_whitespace, first_non_empty

LOGGER = logging.getLogger(__name__)

BLANK_URL = "about:blank"

T = TypeVar("T")

_SECTIONS = (
    ("windows", WindowOrigin.OPEN),
    ("_closedWindows", WindowOrigin.CLOSED),
)


def _describe(value: Any) -> str:
    return type(value).__name__


def _require_object(value: Any, location: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise MalformedSessionError(f"expected object for {location}, got {_describe(value)}")
    return value


def _check_type(value: Any, kind: Type[T], location: str) -> T:
    # bool is an int subclass; never accept it where a number is expected.
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise MalformedSessionError(
            f"expected {kind.__name__} for {location}, got {_describe(value)}"
        )
    return value


def _optional(obj: Dict[str, Any], key: str, kind: Type[T], location: str) -> Optional[T]:
    value = obj.get(key)
    if value is None:
        return None
    return _check_type(value, kind, f"{location}.{key}")


def _required(obj: Dict[str, Any], key: str, kind: Type[T], location: str) -> T:
    value = obj.get(key)
    if value is None:
        raise MissingFieldError(key, location)
    return _check_type(value, kind, f"{location}.{key}")


def _parse_entry(raw: Any, location: str) -> HistoryEntry:
    entry = _require_object(raw, location)
    url = _required(entry, "url", str, location)
    title = _optional(entry, "title", str, location)
    return HistoryEntry(url=url, title=first_non_empty(title, url))


def _parse_tab(raw: Any, location: str) -> Tab:
    tab = _require_object(raw, location)
    entries = _required(tab, "entries", list, location)
    history = tuple(
        _parse_entry(entry, f"{location}.entries[{i}]") for i, entry in enumerate(entries)
    )
    pinned = bool(_optional(tab, "pinned", bool, location))
    hidden = bool(_optional(tab, "hidden", bool, location))

    if not history:
        # Freshly opened tabs have no history yet.
        url = _optional(tab, "userTypedValue", str, location) or BLANK_URL
        return Tab(url=url, title=url, history=(), index=0, pinned=pinned, hidden=hidden)

    index = _optional(tab, "index", int, location)
    if index is None:
        index = len(history)
    index = min(max(index, 1), len(history))
    current = history[index - 1]
    return Tab(
        url=current.url,
        title=current.title,
        history=history,
        index=index,
        pinned=pinned,
        hidden=hidden,
    )


def _window_title(explicit: Optional[str], tabs: List[Tab], selected: Optional[int]) -> str:
    if explicit and explicit.strip():
        return collapse_whitespace(explicit)
    if not tabs:
        return ""
    position = selected if selected is not None and 1 <= selected <= len(tabs) else 1
    return collapse_whitespace(tabs[position - 1].title)


def _parse_window(raw: Any, origin: WindowOrigin, location: str) -> Window:
    window = _require_object(raw, location)
    raw_tabs = _required(window, "tabs", list, location)
    tabs = [_parse_tab(tab, f"{location}.tabs[{i}]") for i, tab in enumerate(raw_tabs)]
    selected = _optional(window, "selected", int, location)
    title = _optional(window, "title", str, location)
    return Window(
        title=_window_title(title, tabs, selected),
        tabs=tuple(tabs),
        origin=origin,
        selected=selected,
    )


def parse_document(document: Any) -> SessionTree:
    """Build a session tree from an already decoded JSON value."""
    root = _require_object(document, "session")
    windows: List[Window] = []
    for key, origin in _SECTIONS:
        section = _optional(root, key, list, "session")
        if section is None:
            LOGGER.debug("Session has no %r section", key)
            continue
        for i, raw_window in enumerate(section):
            windows.append(_parse_window(raw_window, origin, f"{key}[{i}]"))
    return SessionTree(windows=tuple(windows))


def parse(decompressed: bytes) -> SessionTree:
    """Parse decompressed session-store bytes."""
    try:
        text = decompressed.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedSessionError(f"session data is not valid UTF-8: {exc}") from exc
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedSessionError(f"session data is not valid JSON: {exc}") from exc

    tree = parse_document(document)
    LOGGER.info(
        "Parsed session with %d open and %d closed windows (%d tabs)",
        len(tree.open_windows),
        len(tree.closed_windows),
        tree.tab_count,
    )
    return tree
