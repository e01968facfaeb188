# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Shared fixtures: Basic header builder and a scripted directory server."""

from __future__ import annotations

import base64
from typing import Any

import pytest
from ldap3.core.exceptions import LDAPException, LDAPStartTLSError

from genro_basicauth.realms import DirectoryRealm, TlsVerify

PEOPLE = "ou=people,dc=example,dc=com"
ALICE_DN = f"uid=alice,{PEOPLE}"
READER_DN = "cn=reader,dc=example,dc=com"


def basic(username: str, password: str) -> str:
    token = base64.b64encode(f"{username}:{password}".encode()).decode("ascii")
    return f"Basic {token}"


class FakeConnection:
    """ldap3-compatible connection answering from a FakeDirectory."""

    def __init__(self, directory: FakeDirectory, realm: DirectoryRealm, tls_verify: TlsVerify):
        self.directory = directory
        self.realm = realm
        self.tls_verify = tls_verify
        self.opened = False
        self.unbound = False
        self.binds: list[tuple[str, str]] = []
        self.searches: list[dict[str, Any]] = []
        self.response: list[dict[str, Any]] | None = None
        self.result: dict[str, Any] = {}

    def open(self) -> None:
        if self.directory.open_error is not None:
            raise self.directory.open_error
        self.opened = True

    def start_tls(self) -> bool:
        if self.directory.bad_certificate and self.tls_verify is not TlsVerify.NONE:
            raise LDAPStartTLSError(
                "wrap socket error: [SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed"
            )
        if not self.directory.start_tls_ok:
            self.result = {"description": "protocolError", "message": "StartTLS not supported"}
            return False
        return True

    def rebind(self, user: str, password: str, authentication: Any = None) -> bool:
        self.binds.append((user, password))
        ok = bool(password) and self.directory.passwords.get(user) == password
        self.result = {"description": "success" if ok else "invalidCredentials"}
        return ok

    def search(self, **kwargs: Any) -> bool:
        self.searches.append(kwargs)
        if self.directory.search_error is not None:
            raise self.directory.search_error
        if self.directory.search_result != "success":
            self.response = []
            self.result = {"description": self.directory.search_result, "message": ""}
            return False
        dns = self.directory.entries.get(kwargs["search_filter"], [])
        self.response = [{"type": "searchResEntry", "dn": dn} for dn in dns]
        self.response.append({"type": "searchResRef", "uri": ["ldap://elsewhere/"]})
        self.result = {"description": "success"}
        return bool(dns)

    def unbind(self) -> bool:
        if self.directory.unbind_error:
            raise LDAPException("connection already closed")
        self.unbound = True
        return True


class FakeDirectory:
    """Scripted directory server. Tests tweak attributes, then run a verify."""

    def __init__(self) -> None:
        self.entries: dict[str, list[str]] = {"(uid=alice)": [ALICE_DN]}
        self.passwords: dict[str, str] = {ALICE_DN: "wonderland", READER_DN: "readerpw"}
        self.open_error: Exception | None = None
        self.search_error: Exception | None = None
        self.search_result = "success"
        self.bad_certificate = False
        self.start_tls_ok = True
        self.unbind_error = False
        self.connections: list[FakeConnection] = []

    def factory(self, realm: DirectoryRealm, tls_verify: TlsVerify) -> FakeConnection:
        conn = FakeConnection(self, realm, tls_verify)
        self.connections.append(conn)
        return conn


@pytest.fixture
def directory() -> FakeDirectory:
    return FakeDirectory()
