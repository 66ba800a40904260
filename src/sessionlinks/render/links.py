"""Render selected tab groups as a list of links.

Text formats are built directly. PDF output is produced from the HTML
rendering with PyMuPDF's ``Story`` layout engine.
"""

from __future__ import annotations

import html
import io
import logging
from dataclasses import dataclass
from itertools import groupby
from typing import Callable, Dict, Iterator, List, Sequence, Union

import fitz  # PyMuPDF

from sessionlinks.errors import ConversionFailedError, RenderError, UnsupportedFormatError
from sessionlinks.models import (
    AllTabGroups,
    GroupKey,
    Partition,
    SessionTree,
    Tab,
    TabGroupInfo,
    Window,
)
from sessionlinks.render.formats import FormatInfo
from sessionlinks.selection import GenerateOptions
from sessionlinks.utils.text import collapse_whitespace

LOGGER = logging.getLogger(__name__)

Rendered = Union[str, bytes]

DOCUMENT_TITLE = "Session links"

PDF_CSS = """
body { font-family: sans-serif; font-size: 10pt; }
h1 { font-size: 16pt; margin-top: 12pt; }
h2 { font-size: 12pt; margin-top: 8pt; }
a { color: #1a4fa0; }
"""

HTML_CSS = """
body { font-family: sans-serif; max-width: 60em; margin: 2em auto; line-height: 1.4; }
h2 { margin-top: 1.5em; }
li { margin: 0.2em 0; word-break: break-all; }
"""


@dataclass(frozen=True, slots=True)
class ResolvedGroup:
    """A selected tab group together with the window it names."""

    partition: Partition
    info: TabGroupInfo
    window: Window

    @property
    def tabs(self) -> Sequence[Tab]:
        return self.window.tabs


def resolve(
    tree: SessionTree, groups: AllTabGroups, selection: GenerateOptions
) -> List[ResolvedGroup]:
    """Selected groups in export order: open before closed, source order within each."""
    resolved: List[ResolvedGroup] = []
    for partition in Partition:
        windows = tree.partition(partition)
        for group in groups.partition(partition):
            if not selection.includes(GroupKey(partition, group.index)):
                continue
            if group.index >= len(windows):
                raise RenderError(
                    f"{partition.value} tab group {group.index} does not exist in the session"
                )
            resolved.append(ResolvedGroup(partition, group, windows[group.index]))
    return resolved


def _by_partition(resolved: Sequence[ResolvedGroup]) -> Iterator[tuple[Partition, List[ResolvedGroup]]]:
    for partition, items in groupby(resolved, key=lambda item: item.partition):
        yield partition, list(items)


def _tab_title(tab: Tab) -> str:
    return collapse_whitespace(tab.title) or tab.url


def render_text(resolved: Sequence[ResolvedGroup]) -> str:
    lines: List[str] = []
    for partition, items in _by_partition(resolved):
        lines += [partition.label, "=" * len(partition.label), ""]
        for item in items:
            lines += [item.info.name, "-" * len(item.info.name)]
            lines += [f"{_tab_title(tab)} - {tab.url}" for tab in item.tabs]
            lines.append("")
    return "\n".join(lines)


_MARKDOWN_SPECIAL = set("\\`*_[]<>#|")


def markdown_escape(text: str) -> str:
    return "".join("\\" + char if char in _MARKDOWN_SPECIAL else char for char in text)


def markdown_url(url: str) -> str:
    return url.replace(" ", "%20").replace("(", "%28").replace(")", "%29")


def render_markdown(resolved: Sequence[ResolvedGroup]) -> str:
    lines: List[str] = []
    for partition, items in _by_partition(resolved):
        lines += [f"# {partition.label}", ""]
        for item in items:
            lines += [f"## {markdown_escape(item.info.name)}", ""]
            lines += [
                f"- [{markdown_escape(_tab_title(tab))}]({markdown_url(tab.url)})"
                for tab in item.tabs
            ]
            lines.append("")
    return "\n".join(lines)


def render_html_body(resolved: Sequence[ResolvedGroup]) -> str:
    """HTML fragment with headings and link lists, shared by HTML and PDF output."""
    parts: List[str] = []
    for partition, items in _by_partition(resolved):
        parts.append(f"<h1>{html.escape(partition.label)}</h1>")
        for item in items:
            parts.append(f"<h2>{html.escape(item.info.name)}</h2>")
            parts.append("<ul>")
            for tab in item.tabs:
                parts.append(
                    f'<li><a href="{html.escape(tab.url, quote=True)}">'
                    f"{html.escape(_tab_title(tab))}</a></li>"
                )
            parts.append("</ul>")
    return "\n".join(parts)


def render_html(resolved: Sequence[ResolvedGroup]) -> str:
    lines = [
        "<!DOCTYPE html>",
        '<html lang="en">',
        "<head>",
        '<meta charset="utf-8">',
        f"<title>{DOCUMENT_TITLE}</title>",
        f"<style>{HTML_CSS}</style>",
        "</head>",
        "<body>",
    ]
    body = render_html_body(resolved)
    if body:
        lines.append(body)
    lines += ["</body>", "</html>", ""]
    return "\n".join(lines)


def rtf_escape(text: str) -> str:
    out: List[str] = []
    for char in text:
        if char in "\\{}":
            out.append("\\" + char)
        elif char == "\n":
            out.append("\\line ")
        elif ord(char) < 128:
            out.append(char)
        else:
            encoded = char.encode("utf-16-le")
            for i in range(0, len(encoded), 2):
                unit = int.from_bytes(encoded[i : i + 2], "little")
                # RTF wants signed 16-bit code units.
                out.append(f"\\u{unit - 65536 if unit > 32767 else unit}?")
    return "".join(out)


def render_rtf(resolved: Sequence[ResolvedGroup]) -> str:
    parts: List[str] = ["{\\rtf1\\ansi\\deff0{\\fonttbl{\\f0\\fswiss Helvetica;}}\\f0\\fs22\n"]
    for partition, items in _by_partition(resolved):
        parts.append(f"{{\\b\\fs32 {rtf_escape(partition.label)}}}\\par\n")
        for item in items:
            parts.append(f"{{\\b\\fs26 {rtf_escape(item.info.name)}}}\\par\n")
            for tab in item.tabs:
                url = rtf_escape(tab.url.replace('"', "%22"))
                parts.append(
                    f'{{\\field{{\\*\\fldinst{{HYPERLINK "{url}"}}}}'
                    f"{{\\fldrslt{{\\ul {rtf_escape(_tab_title(tab))}}}}}}}\\par\n"
                )
            parts.append("\\par\n")
    parts.append("}\n")
    return "".join(parts)


def html_to_pdf(body: str, *, paper_size: str = "a4", margin: float = 36) -> bytes:
    """Lay out an HTML fragment on as many pages as needed and return PDF bytes."""
    try:
        story = fitz.Story(html=body, user_css=PDF_CSS)
        buffer = io.BytesIO()
        writer = fitz.DocumentWriter(buffer)
        mediabox = fitz.paper_rect(paper_size)
        where = mediabox + (margin, margin, -margin, -margin)
        more = True
        while more:
            device = writer.begin_page(mediabox)
            more, _ = story.place(where)
            story.draw(device)
            writer.end_page()
        writer.close()
    except Exception as exc:
        raise ConversionFailedError(f"PDF conversion failed: {exc}") from exc
    return buffer.getvalue()


_TEXT_RENDERERS: Dict[FormatInfo, Callable[[Sequence[ResolvedGroup]], str]] = {
    FormatInfo.TEXT: render_text,
    FormatInfo.MARKDOWN: render_markdown,
    FormatInfo.HTML: render_html,
    FormatInfo.RTF: render_rtf,
}


def render(
    tree: SessionTree,
    groups: AllTabGroups,
    selection: GenerateOptions,
    fmt: FormatInfo,
    *,
    paper_size: str = "a4",
) -> Rendered:
    """Render the selected groups. Text formats return ``str``, PDF returns ``bytes``."""
    if not isinstance(fmt, FormatInfo):
        raise UnsupportedFormatError(f"unsupported output format: {fmt!r}")

    resolved = resolve(tree, groups, selection)
    LOGGER.debug("Rendering %d tab groups as %s", len(resolved), fmt.as_str())
    if fmt is FormatInfo.PDF:
        return html_to_pdf(render_html_body(resolved), paper_size=paper_size)
    renderer = _TEXT_RENDERERS.get(fmt)
    if renderer is None:
        raise UnsupportedFormatError(f"no renderer for format {fmt.as_str()!r}")
    return renderer(resolved)


def render_preview(tree: SessionTree, groups: AllTabGroups, selection: GenerateOptions) -> str:
    """Plain text rendering shown before saving."""
    return render_text(resolve(tree, groups, selection))
