"""Command line interface for sessionlinks."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from sessionlinks.config import AppConfig
from sessionlinks.errors import SessionLinksError
from sessionlinks.models import Partition
from sessionlinks.pipeline import (
    FAILED_DECOMPRESS,
    FAILED_READ,
    FAILED_SAVE,
    STATUS_DECOMPRESSING,
    STATUS_READING,
    FileRecord,
    failure_status,
)
from sessionlinks.render.formats import FormatInfo, OutputOptions
from sessionlinks.render.links import render
from sessionlinks.utils.files import write_to_file
from sessionlinks.worker import SessionController


console = Console()
app = typer.Typer(help="sessionlinks - recover links from Firefox session files")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _print_status(text: str) -> None:
    style = "red" if text.startswith(("Failed", "Unexpected")) else "dim"
    console.print(text, style=style, markup=False, highlight=False)


def _parse_format(name: str) -> FormatInfo:
    try:
        return FormatInfo.parse(name)
    except SessionLinksError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _load_session(
    session_file: Path,
    config: AppConfig,
    open_groups: Optional[List[int]] = None,
    closed_groups: Optional[List[int]] = None,
) -> SessionController:
    controller = SessionController(config, on_status=_print_status)
    controller.load(session_file)
    controller.run_until_idle()
    if controller.last_error is not None:
        raise typer.Exit(code=1)

    for partition, indexes in ((Partition.OPEN, open_groups), (Partition.CLOSED, closed_groups)):
        available = len(controller.groups.partition(partition))
        for index in indexes or []:
            if not 0 <= index < available:
                raise typer.BadParameter(
                    f"no {partition.value} window with index {index} "
                    f"({available} {partition.value} windows in session)"
                )
            controller.change_selection(partition, index, True)
    controller.run_until_idle()
    if controller.last_error is not None:
        raise typer.Exit(code=1)
    return controller


SESSION_FILE = typer.Argument(
    ..., help="Session store file (e.g. recovery.jsonlz4).", resolve_path=True
)
OPEN_OPTION = typer.Option(None, "--open", "-o", help="Index of an open window to include.")
CLOSED_OPTION = typer.Option(None, "--closed", "-c", help="Index of a closed window to include.")
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Verbose logging")


@app.command()
def formats() -> None:
    """List supported output formats."""
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Name")
    table.add_column("Extension")
    table.add_column("Description")
    for fmt in FormatInfo.all():
        table.add_row(fmt.as_str(), fmt.extension, str(fmt))
    console.print(table)


@app.command()
def groups(
    session_file: Path = SESSION_FILE,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """List the open and closed windows of a session file."""
    _setup_logging(verbose)
    controller = _load_session(session_file, AppConfig())

    for partition in Partition:
        tab_groups = controller.groups.partition(partition)
        if not tab_groups:
            console.print(f"[yellow]No {partition.value} windows.[/yellow]")
            continue
        table = Table(title=partition.label, show_header=True, header_style="bold magenta")
        table.add_column("Index")
        table.add_column("Name")
        table.add_column("Tabs")
        for group in tab_groups:
            table.add_row(str(group.index), group.name, str(group.tab_count))
        console.print(table)


@app.command()
def preview(
    session_file: Path = SESSION_FILE,
    open_groups: Optional[List[int]] = OPEN_OPTION,
    closed_groups: Optional[List[int]] = CLOSED_OPTION,
    output_format: str = typer.Option("text", "--format", "-f", help="Output format name"),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Print the links that an export would contain."""
    _setup_logging(verbose)
    fmt = _parse_format(output_format)
    if fmt.is_binary:
        raise typer.BadParameter(f"{fmt.as_str()} output cannot be previewed in a terminal")

    config = AppConfig()
    controller = _load_session(session_file, config, open_groups, closed_groups)
    if fmt is FormatInfo.TEXT:
        text = controller.preview
    else:
        text = render(controller.tree, controller.groups, controller.selection.options, fmt)
    console.print(text, markup=False, highlight=False)


@app.command()
def export(
    session_file: Path = SESSION_FILE,
    output: Path = typer.Argument(..., help="File to write the links to."),
    open_groups: Optional[List[int]] = OPEN_OPTION,
    closed_groups: Optional[List[int]] = CLOSED_OPTION,
    output_format: str = typer.Option(
        AppConfig().default_format, "--format", "-f", help="Output format name"
    ),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace an existing file"),
    create_folder: bool = typer.Option(
        False, "--create-folder", help="Create missing parent directories"
    ),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Write links of the selected windows to a file."""
    _setup_logging(verbose)
    fmt = _parse_format(output_format)
    controller = _load_session(session_file, AppConfig(), open_groups, closed_groups)

    selected = controller.selection.selected_groups()
    console.print(f"Exporting {selected} windows as [bold]{fmt.as_str()}[/bold] to {output}")
    controller.save_links(
        output, OutputOptions(format=fmt, overwrite=overwrite, create_folder=create_folder)
    )
    controller.run_until_idle()
    if controller.last_error is not None:
        raise typer.Exit(code=1)


@app.command()
def decompress(
    session_file: Path = SESSION_FILE,
    output: Path = typer.Argument(..., help="File to write the decompressed JSON to."),
    overwrite: bool = typer.Option(False, "--overwrite", help="Replace an existing file"),
    create_folder: bool = typer.Option(
        False, "--create-folder", help="Create missing parent directories"
    ),
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Write the decompressed session JSON without parsing it."""
    _setup_logging(verbose)
    record = FileRecord(session_file)
    steps = (
        (STATUS_READING, FAILED_READ, record.load),
        (STATUS_DECOMPRESSING, FAILED_DECOMPRESS, record.advance),
    )
    for status, failure, step in steps:
        _print_status(status)
        try:
            step()
        except SessionLinksError as exc:
            _print_status(failure_status(failure, exc))
            raise typer.Exit(code=1) from exc

    data = record.payload
    options = OutputOptions(overwrite=overwrite, create_folder=create_folder)
    try:
        write_to_file(data, output, options)
    except SessionLinksError as exc:
        _print_status(failure_status(FAILED_SAVE, exc))
        raise typer.Exit(code=1) from exc
    console.print(f"Wrote {len(data)} bytes to {output}")
