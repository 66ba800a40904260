"""Tests for tab group extraction."""

from __future__ import annotations

from typing import Any, Dict

from conftest import session_bytes
from sessionlinks.models import SessionTree, Tab, TabGroupInfo, Window, WindowOrigin
from sessionlinks.session.groups import extract, group_name
from sessionlinks.session.parser import parse


class TestExtract:
    """Test extract function."""

    def test_three_open_one_closed(self, sample_session: Dict[str, Any]) -> None:
        groups = extract(parse(session_bytes(sample_session)))

        assert len(groups.open) == 3
        assert len(groups.closed) == 1
        assert [g.index for g in groups.open] == [0, 1, 2]
        assert [g.index for g in groups.closed] == [0]
        assert len(groups) == 4

    def test_names(self, sample_session: Dict[str, Any]) -> None:
        groups = extract(parse(session_bytes(sample_session)))

        assert [g.name for g in groups.open] == ["Python docs", "Hacker News", "Window 3"]
        assert groups.closed[0].name == "Closed research"

    def test_tab_counts(self, sample_session: Dict[str, Any]) -> None:
        groups = extract(parse(session_bytes(sample_session)))
        assert [g.tab_count for g in groups.open] == [2, 1, 0]

    def test_fallback_numbering_is_per_partition(self) -> None:
        tree = SessionTree(
            windows=(
                Window(title="", tabs=(), origin=WindowOrigin.OPEN),
                Window(title="", tabs=(), origin=WindowOrigin.CLOSED),
                Window(title="", tabs=(), origin=WindowOrigin.CLOSED),
            )
        )
        groups = extract(tree)
        assert groups.open == (TabGroupInfo(name="Window 1", index=0),)
        assert [g.name for g in groups.closed] == ["Window 1", "Window 2"]

    def test_custom_template(self) -> None:
        tree = SessionTree(windows=(Window(title="", tabs=()),))
        groups = extract(tree, name_template="Fenster {number}")
        assert groups.open[0].name == "Fenster 1"

    def test_repeated_extraction_is_stable(self, sample_session: Dict[str, Any]) -> None:
        tree = parse(session_bytes(sample_session))
        assert extract(tree) == extract(tree)

    def test_empty_tree(self) -> None:
        groups = extract(SessionTree())
        assert groups.open == ()
        assert groups.closed == ()


class TestGroupName:
    """Test group_name helper."""

    def test_title_used(self) -> None:
        window = Window(title="Work", tabs=(Tab(url="https://a.test/", title="A"),))
        assert group_name(window, 4) == "Work"

    def test_whitespace_title_falls_back(self) -> None:
        assert group_name(Window(title=" \n ", tabs=()), 1) == "Window 2"
