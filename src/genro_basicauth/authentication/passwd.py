# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Passwd-file credential store.

File format::

    # comment
    alice:password
    bob:$apr1$...
    carol:{SSHA}...

One ``username:credential`` record per line, split on the first colon.
Blank lines and ``#`` comments are skipped; lines without a colon or with an
empty username are ignored. A username appearing twice makes the file
invalid (``ConfigurationError``): picking either record would be a guess.

Caching
=======
``PasswdFileCache`` keeps one parsed ``PasswdFile`` per path, keyed on the
file's ``(inode, size, mtime_ns)``. A changed file is re-read on the next
lookup; ``invalidate()`` drops entries explicitly. Parsed snapshots are never
mutated and the cache only swaps dict entries, so concurrent lookups need no
locks. Every read opens, reads and closes the file inside one ``with`` block.

Errors::

    FileNotFound     path does not exist
    FileUnreadable   permission denied, is a directory, undecodable, other OSError
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from ..exceptions import ConfigurationError, CredentialFormatError, FileNotFound, FileUnreadable
from ..hashes import DEFAULT_REGISTRY, HashRegistry
from .base import AuthBackend, Verdict

if TYPE_CHECKING:
    from ..credentials import Credentials
    from ..realms import PasswdFileRealm

__all__ = ["PasswdFile", "PasswdFileCache", "PasswdFileBackend", "read_passwd_file"]

logger = logging.getLogger("genro_basicauth.passwd")


@dataclass(frozen=True)
class PasswdFile:
    """Immutable snapshot of a parsed passwd file."""

    source: str
    entries: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def parse(cls, text: str, source: str = "<string>") -> PasswdFile:
        """Parse file content.

        Raises:
            ConfigurationError: A username appears more than once.
        """
        entries: dict[str, str] = {}
        for lineno, line in enumerate(text.splitlines(), start=1):
            # credentials keep surrounding whitespace
            if not line.strip() or line.lstrip().startswith("#"):
                continue
            username, sep, credential = line.partition(":")
            if not sep or not username:
                logger.debug(f"{source}:{lineno}: ignoring malformed line")
                continue
            if username in entries:
                raise ConfigurationError(f"{source}:{lineno}: duplicate user '{username}'")
            entries[username] = credential
        return cls(source=source, entries=MappingProxyType(entries))

    def lookup(self, username: str) -> str | None:
        return self.entries.get(username)

    def __contains__(self, username: object) -> bool:
        return username in self.entries

    def __len__(self) -> int:
        return len(self.entries)


def read_passwd_file(path: str | Path) -> PasswdFile:
    """Read and parse ``path``.

    Raises:
        FileNotFound: path does not exist.
        FileUnreadable: path cannot be read or decoded.
        ConfigurationError: duplicate usernames.
    """
    try:
        with open(path, encoding="utf-8") as f:
            text = f.read()
    except FileNotFoundError:
        raise FileNotFound(f"Passwd file not found: {path}") from None
    except UnicodeDecodeError as e:
        raise FileUnreadable(f"Passwd file is not valid UTF-8: {path}") from e
    except OSError as e:
        raise FileUnreadable(f"Cannot read passwd file {path}: {e.strerror or e}") from e
    return PasswdFile.parse(text, source=str(path))


class PasswdFileCache:
    """Per-path cache of parsed passwd files, invalidated on file change."""

    __slots__ = ("_entries",)

    def __init__(self) -> None:
        self._entries: dict[str, tuple[tuple[int, int, int], PasswdFile]] = {}

    def load(self, path: str | Path) -> PasswdFile:
        """Return the snapshot for ``path``, re-reading it if it changed."""
        key = os.fspath(path)
        try:
            st = os.stat(key)
        except FileNotFoundError:
            self._entries.pop(key, None)
            raise FileNotFound(f"Passwd file not found: {key}") from None
        except OSError as e:
            raise FileUnreadable(f"Cannot stat passwd file {key}: {e.strerror or e}") from e

        signature = (st.st_ino, st.st_size, st.st_mtime_ns)
        cached = self._entries.get(key)
        if cached is not None and cached[0] == signature:
            return cached[1]

        snapshot = read_passwd_file(key)
        self._entries[key] = (signature, snapshot)
        return snapshot

    def invalidate(self, path: str | Path | None = None) -> None:
        """Drop one path, or every path when called without arguments."""
        if path is None:
            self._entries.clear()
        else:
            self._entries.pop(os.fspath(path), None)

    def __len__(self) -> int:
        return len(self._entries)


class PasswdFileBackend(AuthBackend):
    """Look the user up in a passwd file and check the stored credential.

    Without a cache the file is read on every call.
    """

    realm_kind = "passwd"

    def __init__(
        self, hashes: HashRegistry | None = None, cache: PasswdFileCache | None = None
    ) -> None:
        self.hashes = hashes or DEFAULT_REGISTRY
        self.cache = cache

    def verify(self, realm: PasswdFileRealm, credentials: Credentials) -> Verdict:
        if self.cache is not None:
            passwd = self.cache.load(realm.path)
        else:
            passwd = read_passwd_file(realm.path)

        stored = passwd.lookup(credentials.username)
        if stored is None:
            return Verdict.failed()
        try:
            return Verdict(authenticated=self.hashes.check(credentials.password, stored))
        except CredentialFormatError as e:
            return Verdict.failed(e)
