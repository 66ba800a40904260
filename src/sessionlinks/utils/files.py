"""Utility helpers for reading session files and writing exports."""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator, Union

from sessionlinks.errors import (
    InputNotFoundError,
    InputPermissionError,
    MissingParentError,
    OutputExistsError,
    OutputNotFoundError,
    OutputPermissionError,
    ReadError,
    WriteError,
)
from sessionlinks.render.formats import OutputOptions

LOGGER = logging.getLogger(__name__)


def read_input(path: Path) -> bytes:
    """Read a whole input file, mapping OS errors onto :class:`ReadError`."""
    try:
        with Path(path).open("rb") as handle:
            return handle.read()
    except FileNotFoundError as exc:
        raise InputNotFoundError(f"file not found: {path}") from exc
    except PermissionError as exc:
        raise InputPermissionError(f"permission denied: {path}") from exc
    except OSError as exc:
        raise ReadError(f"could not read {path}: {exc}") from exc


def _ensure_parent(path: Path, create_folder: bool) -> None:
    parent = path.parent
    if parent.is_dir():
        return
    if parent.exists():
        raise WriteError(f"parent path is not a directory: {parent}")
    if not create_folder:
        raise MissingParentError(f"directory does not exist: {parent}")
    LOGGER.info("Creating directory %s", parent)
    parent.mkdir(parents=True, exist_ok=True)


def _target_mode(path: Path) -> int:
    """Mode of the file being replaced, or what a plain ``open`` would create."""
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


@contextmanager
def atomic_target(path: Path) -> Iterator[IO[bytes]]:
    """Yield a temp file next to ``path`` that replaces it on success.

    The temp file is removed when the block raises. The replacement keeps the
    old file's permissions, new files get the usual umask-derived mode.
    """
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    temp_path = Path(temp_name)
    try:
        with os.fdopen(fd, "wb") as handle:
            yield handle
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(temp_path, _target_mode(path))
        os.replace(temp_path, path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


def write_to_file(rendered: Union[str, bytes], path: Path, options: OutputOptions) -> None:
    """Write rendered links to ``path`` according to ``options``."""
    path = Path(path)
    data = rendered.encode("utf-8") if isinstance(rendered, str) else rendered

    if path.exists() and not options.overwrite:
        raise OutputExistsError(f"file already exists: {path}")
    if path.is_dir():
        raise WriteError(f"target is a directory: {path}")

    try:
        _ensure_parent(path, options.create_folder)
        with atomic_target(path) as handle:
            handle.write(data)
    except FileNotFoundError as exc:
        raise OutputNotFoundError(f"could not write {path}: {exc}") from exc
    except PermissionError as exc:
        raise OutputPermissionError(f"permission denied: {path}") from exc
    except OSError as exc:
        raise WriteError(f"could not write {path}: {exc}") from exc
    LOGGER.info("Wrote %d bytes to %s", len(data), path)
