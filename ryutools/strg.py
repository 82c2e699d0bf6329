"""String helpers for trimming around a border and random text."""

from __future__ import annotations

import secrets
import string

_ALPHANUM = string.digits + string.ascii_uppercase + string.ascii_lowercase


def _prepare(text: str, border: str, ignore_case: bool) -> tuple[str, str]:
    if ignore_case:
        return text.lower(), border.lower()
    return text, border


def _last_position(src: str, border: str) -> int:
    if not src:
        return -1
    if not border:
        return len(src) - 1
    return src.rfind(border)


def delete_left(text: str, border: str, ignore_case: bool = False) -> str:
    """Drop everything before the first ``border``, keeping the border.

    The text is returned unchanged when the border is missing or at the start.
    """
    src, dst = _prepare(text, border, ignore_case)
    pos = src.find(dst)
    if pos <= 0:
        return text
    return text[pos:]


def delete_left_plus(text: str, border: str, ignore_case: bool = False) -> str:
    """Drop everything up to and including the first ``border``."""
    src, dst = _prepare(text, border, ignore_case)
    pos = src.find(dst)
    if pos < 0:
        return text
    return text[pos + len(border):]


def delete_right(text: str, border: str, ignore_case: bool = False) -> str:
    """Drop everything after the last ``border``, keeping the border."""
    src, dst = _prepare(text, border, ignore_case)
    pos = _last_position(src, dst)
    if pos < 0:
        return text
    return text[: pos + len(border)]


def delete_right_plus(text: str, border: str, ignore_case: bool = False) -> str:
    """Drop the last ``border`` and everything after it."""
    src, dst = _prepare(text, border, ignore_case)
    pos = _last_position(src, dst)
    if pos < 0:
        return text
    return text[:pos]


def set_last_string(text: str, last: str) -> str:
    """Return ``text`` ending with ``last``, appending it if needed."""
    if text.endswith(last):
        return text
    return text + last


def random_string(length: int) -> str:
    """Return ``length`` random characters drawn from digits and ASCII letters."""
    return "".join(secrets.choice(_ALPHANUM) for _ in range(max(length, 0)))