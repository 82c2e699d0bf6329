"""File and directory helpers."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Union

from .strg import set_last_string

PathLike = Union[str, "os.PathLike[str]"]


def file_exists(name: PathLike) -> bool:
    """Return True if ``name`` can be stat'ed."""
    try:
        os.stat(name)
    except OSError:
        return False
    return True


def file_size(filename: PathLike) -> int:
    """Return the size of ``filename`` in bytes, or 0 if it cannot be stat'ed."""
    try:
        return os.stat(filename).st_size
    except OSError:
        return 0


def temp_path() -> str:
    """Return the temporary directory, ending with a path separator."""
    return set_last_string(tempfile.gettempdir(), os.sep)


def force_directories(path: PathLike) -> None:
    """Create the directory ``path``; an existing directory is left alone."""
    Path(path).mkdir(exist_ok=True)


def save_text_to_file(filename: PathLike, text: str) -> None:
    """Write ``text`` to ``filename``; a file that cannot be opened is skipped."""
    try:
        with open(filename, "w", encoding="utf-8") as out:
            out.write(text)
    except OSError:
        return


def load_file_as_text(filename: PathLike) -> str:
    """Return the contents of ``filename``, or an empty string if it cannot be read."""
    try:
        with open(filename, encoding="utf-8") as source:
            return source.read()
    except OSError:
        return ""