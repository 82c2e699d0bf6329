"""Start options read from a JSON object with typed, defaulted access."""

from __future__ import annotations

import json
from typing import Any


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid JSON constant: {name}")


class StartOption:
    """Typed lookups into a parsed JSON document; any mismatch yields the default."""

    def __init__(self) -> None:
        self._data: Any = None

    def parse_json(self, text: str) -> None:
        """Parse ``text`` as JSON.

        Raises ValueError if it is not valid JSON; the options are then empty.
        """
        try:
            self._data = json.loads(text, parse_constant=_reject_constant)
        except ValueError:
            self._data = None
            raise

    def _lookup(self, name: str) -> Any:
        if isinstance(self._data, dict):
            return self._data.get(name)
        return None

    def get_int(self, name: str, default: int) -> int:
        """Return ``name`` as an integer; numbers are truncated, booleans count as 0/1."""
        value = self._lookup(name)
        if isinstance(value, (bool, int, float)):
            return int(value)
        return default

    def get_bool(self, name: str, default: bool) -> bool:
        """Return ``name`` if it is a JSON boolean."""
        value = self._lookup(name)
        if isinstance(value, bool):
            return value
        return default

    def get_float(self, name: str, default: float) -> float:
        """Return ``name`` as a float if it is a number or a boolean."""
        value = self._lookup(name)
        if isinstance(value, (bool, int, float)):
            return float(value)
        return default

    def get_string(self, name: str, default: str) -> str:
        """Return ``name`` if it is a JSON string."""
        value = self._lookup(name)
        if isinstance(value, str):
            return value
        return default