# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Verifier backends for BasicAuthenticator.

One backend per realm variant; the authenticator picks the backend whose
``realm_kind`` matches the resolved realm's ``kind``.

Exports:
    AuthBackend: ABC for custom backends
    Verdict: Backend outcome
    StaticBackend: Single username/password
    PasswdFileBackend: Colon-delimited credential file
    DirectoryBackend: LDAP / AD bind-and-search
    CallbackBackend: Caller-supplied predicate
    DirectoryHandle: Connection handed over under return_ldap_handle
    BACKEND_REGISTRY: Dict mapping realm kind to backend class
"""

from .base import AuthBackend, Verdict
from .callback import CallbackBackend
from .directory import DirectoryBackend, DirectoryHandle, DirectoryState
from .passwd import PasswdFile, PasswdFileBackend, PasswdFileCache
from .static import StaticBackend

BACKEND_REGISTRY: dict[str, type[AuthBackend]] = {
    "static": StaticBackend,
    "passwd": PasswdFileBackend,
    "directory": DirectoryBackend,
    "callback": CallbackBackend,
}

__all__ = [
    "AuthBackend",
    "Verdict",
    "StaticBackend",
    "PasswdFile",
    "PasswdFileBackend",
    "PasswdFileCache",
    "DirectoryBackend",
    "DirectoryHandle",
    "DirectoryState",
    "CallbackBackend",
    "BACKEND_REGISTRY",
]
