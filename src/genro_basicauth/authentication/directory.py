# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
LDAP / Active Directory bind-and-search verification.

Directory servers check passwords through bind, never by handing out stored
hashes. One verification walks this state machine on a single connection::

    CONNECT ─▶ PLAIN ─┬─▶ TLS_UPGRADING ─▶ SECURE ─┬─▶ ADMIN_BIND ─┬─▶ SEARCH ─▶ USER_BIND ─▶ TEARDOWN
                      └────────────────────────────┘               │
                                                   └───────────────┘
    (start_tls off skips TLS; no binddn skips ADMIN_BIND)

Any failing step jumps straight to TEARDOWN. TEARDOWN unbinds and closes
the connection unless ``return_ldap_handle`` is set and the search step was
reached; then the connection, in its current bind state, is wrapped in a
``DirectoryHandle`` and ownership moves to the caller.

Step failures::

    CONNECT        DirectoryConnectionError
    TLS_UPGRADING  TLSError
    ADMIN_BIND     BindError
    SEARCH         UserNotFound (0 entries) / AmbiguousUser (2+ entries)
                   SearchError (server result other than success)
    USER_BIND      not authenticated (no error kind)

TLS policy (``tls_verify``)::

    none      no certificate validation
    require   certificate must validate, otherwise TLSError
    optional  validate; when only certificate validation fails, reconnect
              and upgrade again without validation (logged as a warning)

Network operations use ``ldap3`` in synchronous mode with ``connect_timeout``
and ``receive_timeout`` both set from the realm ``timeout``. Nothing is
retried except the single ``optional`` TLS fallback.

The username is escaped with ``escape_filter_chars`` before it replaces the
``%s`` placeholder of the filter. An empty password is rejected before any
network I/O: a simple bind with a DN and no password is an unauthenticated
bind that servers accept.

Tests inject ``connection_factory``; it receives the realm and the
``TlsVerify`` policy for this attempt and returns an unopened
ldap3-compatible connection.
"""

from __future__ import annotations

import logging
import math
import ssl
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from ldap3 import AUTO_BIND_NONE, BASE, LEVEL, NONE, SIMPLE, SUBTREE, Connection, Server, Tls
from ldap3.core.exceptions import (
    LDAPBindError,
    LDAPException,
    LDAPPasswordIsMandatoryError,
    LDAPUserNameIsMandatoryError,
)
from ldap3.utils.conv import escape_filter_chars

from ..exceptions import (
    AmbiguousUser,
    AuthError,
    BindError,
    DirectoryConnectionError,
    SearchError,
    TLSError,
    UserNotFound,
)
from ..realms import DirectoryRealm, SearchScope, TlsVerify
from .base import AuthBackend, Verdict

if TYPE_CHECKING:
    from ..credentials import Credentials

__all__ = [
    "DirectoryBackend",
    "DirectoryHandle",
    "DirectoryState",
    "ConnectionFactory",
    "default_connection_factory",
]

logger = logging.getLogger("genro_basicauth.directory")

ConnectionFactory = Callable[[DirectoryRealm, TlsVerify], Any]

_SCOPES = {
    SearchScope.BASE: BASE,
    SearchScope.ONE: LEVEL,
    SearchScope.SUB: SUBTREE,
}

_VALIDATE = {
    TlsVerify.NONE: ssl.CERT_NONE,
    TlsVerify.OPTIONAL: ssl.CERT_REQUIRED,
    TlsVerify.REQUIRE: ssl.CERT_REQUIRED,
}

# request no attributes, only DNs (RFC 4511 4.5.1.8)
_NO_ATTRIBUTES = ["1.1"]

# 2+ entries under size_limit=2 come back as sizeLimitExceeded
_SEARCH_OK = frozenset({"success", "sizeLimitExceeded"})


class DirectoryState(str, Enum):
    CONNECT = "connect"
    PLAIN = "plain"
    TLS_UPGRADING = "tls_upgrading"
    SECURE = "secure"
    ADMIN_BIND = "admin_bind"
    SEARCH = "search"
    USER_BIND = "user_bind"
    TEARDOWN = "teardown"


def default_connection_factory(realm: DirectoryRealm, tls_verify: TlsVerify) -> Connection:
    """Build an unopened synchronous ldap3 connection for ``realm``."""
    tls = None
    if realm.start_tls:
        tls = Tls(validate=_VALIDATE[tls_verify], ca_certs_file=realm.cafile)
    server = Server(
        realm.host,
        port=realm.port,
        use_ssl=False,
        get_info=NONE,
        tls=tls,
        connect_timeout=realm.timeout,
    )
    return Connection(
        server,
        version=realm.version,
        auto_bind=AUTO_BIND_NONE,
        receive_timeout=realm.timeout,
        raise_exceptions=False,
        read_only=True,
        auto_referrals=False,
    )


def _close_quietly(conn: Any) -> None:
    try:
        conn.unbind()
    except LDAPException as e:
        logger.debug(f"unbind failed: {e}")


def _result_message(conn: Any) -> str:
    result = getattr(conn, "result", None) or {}
    description = result.get("description") or "unknown"
    message = result.get("message")
    return f"{description}: {message}" if message else description


def _is_certificate_failure(exc: BaseException) -> bool:
    seen: BaseException | None = exc
    while seen is not None:
        if isinstance(seen, ssl.SSLCertVerificationError):
            return True
        text = str(seen).lower()
        if "certificate verify failed" in text or "certificate_verify_failed" in text:
            return True
        seen = seen.__cause__ or seen.__context__
    return False


class DirectoryHandle:
    """Directory connection handed over to the caller.

    Returned only when the realm sets ``return_ldap_handle``. The caller owns
    the connection and must close it, directly or as a context manager::

        with result.directory_handle as handle:
            handle.connection.search(...)
    """

    __slots__ = ("connection", "dn", "_closed")

    def __init__(self, connection: Any, dn: str | None = None) -> None:
        self.connection = connection
        self.dn = dn
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Unbind and close the connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        _close_quietly(self.connection)

    def __enter__(self) -> DirectoryHandle:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"DirectoryHandle(dn={self.dn!r}, {state})"


class _Session:
    """State of one verification: connection, visited states, debug logging."""

    __slots__ = ("realm", "conn", "trace")

    def __init__(self, realm: DirectoryRealm) -> None:
        self.realm = realm
        self.conn: Any = None
        self.trace: list[str] = []

    def enter(self, state: DirectoryState) -> None:
        self.trace.append(state.value)
        if self.realm.debug:
            logger.debug(f"[{self.realm.host}:{self.realm.port}] -> {state.value}")

    def close(self) -> None:
        if self.conn is not None:
            _close_quietly(self.conn)
            self.conn = None


class DirectoryBackend(AuthBackend):
    """Bind-and-search verification against an LDAP or AD server."""

    realm_kind = "directory"

    def __init__(self, connection_factory: ConnectionFactory | None = None) -> None:
        self.connection_factory = connection_factory or default_connection_factory

    def verify(self, realm: DirectoryRealm, credentials: Credentials) -> Verdict:
        if not credentials.password:
            return Verdict.failed()

        session = _Session(realm)
        handle: DirectoryHandle | None = None
        authenticated = False
        error: AuthError | None = None
        try:
            self._connect(session)
            if realm.binddn:
                self._admin_bind(session)
            try:
                dn = self._search(session, credentials.username)
                authenticated = self._user_bind(session, dn, credentials.password)
            except (SearchError, UserNotFound, AmbiguousUser) as e:
                dn, error = None, e
            if realm.return_ldap_handle:
                handle = DirectoryHandle(session.conn, dn)
        except AuthError as e:
            error = e
        finally:
            session.enter(DirectoryState.TEARDOWN)
            if handle is None:
                session.close()

        return Verdict(
            authenticated=authenticated,
            error=error,
            handle=handle,
            trace=tuple(session.trace),
        )

    def _open(self, session: _Session, tls_verify: TlsVerify) -> None:
        realm = session.realm
        session.enter(DirectoryState.CONNECT)
        session.conn = self.connection_factory(realm, tls_verify)
        try:
            session.conn.open()
        except LDAPException as e:
            session.close()
            raise DirectoryConnectionError(
                f"Cannot connect to {realm.host}:{realm.port}: {e}"
            ) from e
        session.enter(DirectoryState.PLAIN)

    def _start_tls(self, session: _Session) -> None:
        session.enter(DirectoryState.TLS_UPGRADING)
        try:
            upgraded = session.conn.start_tls()
        except LDAPException as e:
            raise TLSError(f"STARTTLS failed: {e}") from e
        if not upgraded:
            raise TLSError(f"STARTTLS refused: {_result_message(session.conn)}")
        session.enter(DirectoryState.SECURE)

    def _connect(self, session: _Session) -> None:
        realm = session.realm
        self._open(session, realm.tls_verify)
        if not realm.start_tls:
            return
        try:
            self._start_tls(session)
        except TLSError as e:
            if realm.tls_verify is not TlsVerify.OPTIONAL or not _is_certificate_failure(e):
                raise
            logger.warning(
                f"[{realm.host}:{realm.port}] certificate validation failed, "
                f"continuing without validation (tls_verify=optional): {e}"
            )
            session.close()
            self._open(session, TlsVerify.NONE)
            self._start_tls(session)

    def _bind(self, session: _Session, dn: str, password: str) -> bool:
        try:
            return bool(session.conn.rebind(user=dn, password=password, authentication=SIMPLE))
        except (LDAPBindError, LDAPPasswordIsMandatoryError, LDAPUserNameIsMandatoryError) as e:
            logger.debug(f"bind as '{dn}' refused by client: {e}")
            return False
        except LDAPException as e:
            raise DirectoryConnectionError(f"Connection lost during bind: {e}") from e

    def _admin_bind(self, session: _Session) -> None:
        realm = session.realm
        session.enter(DirectoryState.ADMIN_BIND)
        if not self._bind(session, realm.binddn or "", realm.bindpw or ""):
            raise BindError(
                f"Administrative bind as '{realm.binddn}' rejected: "
                f"{_result_message(session.conn)}"
            )

    def _search(self, session: _Session, username: str) -> str:
        realm = session.realm
        session.enter(DirectoryState.SEARCH)
        search_filter = realm.filter % escape_filter_chars(username)
        try:
            session.conn.search(
                search_base=realm.basedn,
                search_filter=search_filter,
                search_scope=_SCOPES[realm.scope],
                attributes=_NO_ATTRIBUTES,
                size_limit=2,
                time_limit=max(1, math.ceil(realm.timeout)),
            )
        except LDAPException as e:
            raise DirectoryConnectionError(f"Search failed: {e}") from e

        outcome = (session.conn.result or {}).get("description", "success")
        if outcome not in _SEARCH_OK:
            raise SearchError(
                f"Search under '{realm.basedn}' failed: {_result_message(session.conn)}"
            )

        dns = [
            entry["dn"]
            for entry in (session.conn.response or [])
            if entry.get("type") == "searchResEntry"
        ]
        if not dns:
            raise UserNotFound(f"No entry for '{username}' under '{realm.basedn}'")
        if len(dns) > 1:
            raise AmbiguousUser(f"Several entries match '{username}' under '{realm.basedn}'")
        return dns[0]

    def _user_bind(self, session: _Session, dn: str, password: str) -> bool:
        session.enter(DirectoryState.USER_BIND)
        return self._bind(session, dn, password)
