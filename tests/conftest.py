"""Shared fixtures: session documents and containers built on the fly."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

from sessionlinks.container.mozlz4 import encode
from sessionlinks.models import SessionTree, Tab, Window, WindowOrigin


def make_tab(url: str, title: Optional[str] = None, **extra: Any) -> Dict[str, Any]:
    entry: Dict[str, Any] = {"url": url, "ID": 1, "docshellUUID": "{0000}"}
    if title is not None:
        entry["title"] = title
    return {"entries": [entry], "index": 1, "lastAccessed": 1700000000000, **extra}


def make_session(
    open_windows: List[Dict[str, Any]], closed_windows: Optional[List[Dict[str, Any]]] = None
) -> Dict[str, Any]:
    return {
        "version": ["sessionrestore", 1],
        "windows": open_windows,
        "_closedWindows": closed_windows or [],
        "selectedWindow": 1,
        "session": {"lastUpdate": 1700000000000, "startTime": 1690000000000},
        "global": {},
    }


def session_bytes(document: Dict[str, Any]) -> bytes:
    return json.dumps(document).encode("utf-8")


@pytest.fixture
def sample_session() -> Dict[str, Any]:
    """Three open windows and one closed window."""
    return make_session(
        [
            {
                "selected": 2,
                "tabs": [
                    make_tab("https://example.com", "Example"),
                    {
                        "entries": [
                            {"url": "https://www.python.org/", "title": "Welcome to Python.org"},
                            {"url": "https://docs.python.org/3/", "title": "Python docs"},
                        ],
                        "index": 2,
                    },
                ],
                "_closedTabs": [],
                "width": 1280,
            },
            {"selected": 1, "tabs": [make_tab("https://news.ycombinator.com/", "Hacker News")]},
            {"tabs": []},
        ],
        [
            {
                "title": "Closed research",
                "tabs": [make_tab("https://en.wikipedia.org/wiki/LZ4", "LZ4 - Wikipedia")],
                "closedAt": 1700000000000,
            }
        ],
    )


@pytest.fixture
def session_file(tmp_path: Path, sample_session: Dict[str, Any]) -> Path:
    path = tmp_path / "recovery.jsonlz4"
    path.write_bytes(encode(session_bytes(sample_session)))
    return path


@pytest.fixture
def work_tree() -> SessionTree:
    """One open window called "Work" holding a single tab."""
    return SessionTree(
        windows=(
            Window(
                title="Work",
                tabs=(Tab(url="https://example.com", title="Example"),),
                origin=WindowOrigin.OPEN,
            ),
        )
    )
