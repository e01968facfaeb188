# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Verifier backends for BasicAuthenticator.

Each backend handles one realm variant:
- StaticBackend: single configured username/password
- PasswdFileBackend: colon-delimited credential file
- DirectoryBackend: LDAP / Active Directory bind-and-search
- CallbackBackend: caller-supplied predicate

Backend contract:
    verify(realm, credentials) -> Verdict

    Ordinary authentication failures (wrong password, unknown user, hash
    format problems, directory transport/lookup errors) come back inside the
    Verdict. Fatal errors (ConfigurationError family, CallbackError) are
    raised and converted by the authenticator.

Verdict format::

    Verdict(
        authenticated=True,
        error=None,                 # AuthError instance on failure, if any
        handle=None,                # DirectoryHandle when ownership moves
        trace=("connect", ...),     # directory states visited, in order
    )
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from ..credentials import Credentials
    from ..exceptions import AuthError
    from .directory import DirectoryHandle

__all__ = ["AuthBackend", "Verdict"]


@dataclass(frozen=True)
class Verdict:
    """Outcome of one backend verification."""

    authenticated: bool
    error: AuthError | None = None
    handle: DirectoryHandle | None = None
    trace: tuple[str, ...] = ()

    @classmethod
    def failed(cls, error: AuthError | None = None, **kw: Any) -> Verdict:
        return cls(authenticated=False, error=error, **kw)


class AuthBackend(ABC):
    """Base class for verifier backends.

    Subclasses set ``realm_kind`` to the ``kind`` of the realm variant they
    handle and implement ``verify()``. Backends hold only read-only
    collaborators, so one instance serves concurrent calls.
    """

    realm_kind: ClassVar[str] = ""

    @abstractmethod
    def verify(self, realm: Any, credentials: Credentials) -> Verdict:
        """Check credentials against the realm.

        Args:
            realm: Resolved realm variant matching ``realm_kind``.
            credentials: Decoded username/password.

        Returns:
            Verdict with the decision and any non-fatal error.

        Raises:
            AuthError: Only fatal errors (configuration, callback faults).
        """
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
