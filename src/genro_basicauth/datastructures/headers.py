# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Case-insensitive HTTP headers.

The credential extractor reads ``Authorization`` from whatever the host
hands over: raw ASGI header tuples, a plain ``dict`` of strings, or a
framework request object. ``Headers`` folds all of these into one view::

    [(b"Authorization", b"Basic ...")]   ASGI, Latin-1 bytes
    {"Authorization": "Basic ..."}       mapping of str
                        ↓
    {"authorization": ["Basic ..."]}     lowercase name -> values, in order

Example::

    headers = Headers([(b"Authorization", b"Basic YWxpY2U6cHc=")])
    headers.get("AUTHORIZATION")  # "Basic YWxpY2U6cHc="

    headers_from_scope({"headers": [(b"host", b"example.com")]})["host"]
"""

from collections.abc import Iterable, Mapping
from typing import Any, Iterator

__all__ = ["Headers", "headers_from_scope"]

_MASKED = frozenset({"authorization", "proxy-authorization"})


def _text(value: str | bytes) -> str:
    return value.decode("latin-1") if isinstance(value, bytes) else value


class Headers:
    """Read-only, case-insensitive headers; repeated names keep every value."""

    __slots__ = ("_values",)

    def __init__(
        self, raw_headers: Iterable[tuple[str | bytes, str | bytes]] | Mapping[str, str]
    ) -> None:
        pairs = raw_headers.items() if isinstance(raw_headers, Mapping) else raw_headers
        self._values: dict[str, list[str]] = {}
        for name, value in pairs:
            self._values.setdefault(_text(name).lower(), []).append(_text(value))

    def get(self, key: str, default: str | None = None) -> str | None:
        """First value of ``key`` or ``default``."""
        values = self._values.get(key.lower())
        return values[0] if values else default

    def getlist(self, key: str) -> list[str]:
        return list(self._values.get(key.lower(), ()))

    def keys(self) -> list[str]:
        return list(self._values)

    def items(self) -> list[tuple[str, str]]:
        return [(name, value) for name, values in self._values.items() for value in values]

    def __getitem__(self, key: str) -> str:
        values = self._values.get(key.lower())
        if not values:
            raise KeyError(key)
        return values[0]

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return sum(len(values) for values in self._values.values())

    def __repr__(self) -> str:
        shown = [(n, "***" if n in _MASKED else v) for n, v in self.items()]
        return f"Headers({shown!r})"


def headers_from_scope(scope: Mapping[str, Any]) -> Headers:
    """Headers of an ASGI scope; empty when the scope has none."""
    return Headers(scope.get("headers") or ())
