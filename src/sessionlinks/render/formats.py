"""Supported output formats."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from sessionlinks.errors import UnsupportedFormatError


class FormatInfo(Enum):
    """Closed set of export formats.

    Each member carries ``(name, extension, is_binary, description)``.
    """

    TEXT = (
        "text",
        ".txt",
        False,
        "Plain text. Each window is a heading followed by one "
        "`title - url` line per tab.",
    )
    MARKDOWN = (
        "markdown",
        ".md",
        False,
        "Markdown document with a section per window and a `[title](url)` "
        "bullet per tab.",
    )
    HTML = (
        "html",
        ".html",
        False,
        "Standalone HTML page with a clickable list of links per window.",
    )
    RTF = (
        "rtf",
        ".rtf",
        False,
        "Rich Text Format with hyperlinks, opens in most word processors.",
    )
    PDF = (
        "pdf",
        ".pdf",
        True,
        "PDF document with clickable links, rendered from the HTML output.",
    )

    def __init__(self, machine_name: str, extension: str, is_binary: bool, description: str) -> None:
        self.machine_name = machine_name
        self.extension = extension
        self.is_binary = is_binary
        self.description = description

    def as_str(self) -> str:
        """Machine name used on the command line."""
        return self.machine_name

    def __str__(self) -> str:
        return self.description

    @classmethod
    def all(cls) -> Tuple["FormatInfo", ...]:
        return tuple(cls)

    @classmethod
    def parse(cls, name: str) -> "FormatInfo":
        wanted = name.strip().lower().lstrip(".")
        for fmt in cls:
            if wanted in (fmt.as_str(), fmt.extension.lstrip(".")):
                return fmt
        known = ", ".join(fmt.as_str() for fmt in cls)
        raise UnsupportedFormatError(f"unknown output format {name!r} (expected one of: {known})")


@dataclass(slots=True)
class OutputOptions:
    format: FormatInfo = FormatInfo.PDF
    overwrite: bool = False
    create_folder: bool = False
