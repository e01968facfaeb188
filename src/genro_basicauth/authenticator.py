# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
Authentication orchestrator.

``BasicAuthenticator`` is the public entry point. One call:

1. resolves the realm configuration (or uses a realm registered earlier)
2. reads the ``Authorization`` header from the request and decodes it
   (``MissingCredentials`` short-circuits, no backend runs)
3. runs the matching backend
4. assembles a ``VerificationResult`` and, when enabled, logs one event

It never raises for authentication outcomes. Fatal errors (misconfigured
realm, faulting callback) are carried on the result with ``fatal=True``;
``result.raise_for_error()`` re-raises them for hosts that want them on
their error channel.

Logging events
==============
Emitted to the injected logger (default ``genro_basicauth.auth``) when the
authenticator has ``log_events=True`` or the realm sets ``logging``::

    extra = {
        "realm": "Admin area",
        "username": "alice",
        "outcome": "success" | "failure" | "error",
        "error_kind": None | "UserNotFound" | ...,
        "backend": "static" | "passwd" | "directory" | "callback" | None,
    }

success logs at INFO, failure at WARNING, error (fatal) at ERROR.

Example::

    auth = BasicAuthenticator()
    auth.register_realm("Admin area", {"path": "/etc/app/passwd"})

    result, ok = auth.authenticate_realm("Admin area", request)
    if not ok:
        result.raise_for_error()
        ...  # host emits 401 with WWW-Authenticate: Basic realm="Admin area"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .authentication import BACKEND_REGISTRY, AuthBackend, CallbackBackend, Verdict
from .authentication.directory import ConnectionFactory, DirectoryHandle
from .authentication.passwd import PasswdFileCache
from .credentials import Credentials, authorization_header, extract_credentials
from .exceptions import AuthError, ConfigurationError, MissingCredentials
from .executors import BaseExecutor, ThreadExecutor
from .hashes import HashRegistry
from .realms import CallbackRealm, Realm, resolve_realm

__all__ = ["BasicAuthenticator", "VerificationResult"]

_NO_CONFIG = object()


@dataclass
class VerificationResult:
    """Decision and identity for one request.

    Attributes:
        username: Username from the request ("" when none could be decoded).
        authenticated: The decision.
        directory_handle: Open directory connection now owned by the caller,
            present only for directory realms with ``return_ldap_handle``.
        error: Error detail, if any.
        backend: Realm kind that decided, None if no backend ran.
        realm: Realm name.
    """

    username: str
    authenticated: bool
    directory_handle: DirectoryHandle | None = None
    error: AuthError | None = None
    backend: str | None = None
    realm: str | None = None

    @property
    def fatal(self) -> bool:
        return self.error is not None and self.error.fatal

    @property
    def error_kind(self) -> str | None:
        return self.error.error_kind if self.error is not None else None

    @property
    def outcome(self) -> str:
        if self.authenticated:
            return "success"
        return "error" if self.fatal else "failure"

    def raise_for_error(self) -> None:
        """Re-raise the carried error if it is fatal."""
        if self.fatal:
            raise self.error  # type: ignore[misc]

    def release(self) -> None:
        """Close the directory handle, if one was handed over."""
        if self.directory_handle is not None:
            self.directory_handle.close()


class BasicAuthenticator:
    """Realm-aware HTTP Basic authenticator.

    Holds read-only collaborators only (backends, hash registry, logger) plus
    the realm table filled at registration time, so one instance serves any
    number of concurrent calls.

    Attributes:
        logger: Destination of structured events.
        log_events: Log every call, regardless of realm ``logging``.
        backends: Realm kind -> backend instance.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger | logging.LoggerAdapter[Any] | None = None,
        log_events: bool = False,
        hashes: HashRegistry | None = None,
        passwd_cache: PasswdFileCache | None = None,
        connection_factory: ConnectionFactory | None = None,
        backends: dict[str, AuthBackend] | None = None,
        executor: BaseExecutor | None = None,
    ) -> None:
        """
        Args:
            logger: Logger for structured events. Default "genro_basicauth.auth".
            log_events: Log every call.
            hashes: Hash registry for static and passwd realms.
            passwd_cache: Cache for passwd files; None re-reads on every call.
            connection_factory: Directory connection factory (tests).
            backends: Overrides of the default backend per realm kind.
            executor: Executor for ``authenticate_async``. Default: a
                ThreadExecutor created on first use.
        """
        self.logger = logger or logging.getLogger("genro_basicauth.auth")
        self.log_events = log_events
        options: dict[str, dict[str, Any]] = {
            "static": {"hashes": hashes},
            "passwd": {"hashes": hashes, "cache": passwd_cache},
            "directory": {"connection_factory": connection_factory},
        }
        self.backends: dict[str, AuthBackend] = {
            kind: cls(**options.get(kind, {})) for kind, cls in BACKEND_REGISTRY.items()
        }
        if backends:
            self.backends.update(backends)
        self._executor = executor
        self._realms: dict[str, Realm] = {}

    # Realm registration

    def register_realm(self, name: str, config: Any) -> Realm:
        """Resolve ``config`` once and store it under ``name``.

        Raises:
            ConfigurationError: Configuration cannot be resolved.
        """
        realm = resolve_realm(config)
        self._realms[name] = realm
        return realm

    def get_realm(self, name: str) -> Realm:
        try:
            return self._realms[name]
        except KeyError:
            raise ConfigurationError(f"Realm '{name}' is not registered") from None

    @property
    def realms(self) -> dict[str, Realm]:
        return dict(self._realms)

    @property
    def executor(self) -> BaseExecutor:
        if self._executor is None:
            self._executor = ThreadExecutor(name="auth", orphan_handler=_release_verdict)
        return self._executor

    # Authentication

    def authenticate(
        self, realm_name: str, realm_config: Any, request: Any
    ) -> tuple[VerificationResult, bool]:
        """Authenticate ``request`` against ``realm_config``.

        Args:
            realm_name: Realm name, used in results and log events.
            realm_config: Raw configuration or resolved realm.
            request: Anything ``authorization_header()`` understands.

        Returns:
            ``(result, result.authenticated)``.
        """
        return self._run(realm_name, realm_config, request)

    def authenticate_realm(self, realm_name: str, request: Any) -> tuple[VerificationResult, bool]:
        """Authenticate against a realm registered with ``register_realm``."""
        return self._run(realm_name, _NO_CONFIG, request)

    async def authenticate_async(
        self, realm_name: str, realm_config: Any, request: Any
    ) -> tuple[VerificationResult, bool]:
        """Like ``authenticate`` with blocking backends run in the executor.

        Coroutine predicates are awaited; plain ones run in a worker thread.
        If the awaiting task is cancelled, a directory handle produced after
        cancellation is closed instead of leaked.
        """
        realm, credentials, error = self._prepare(realm_name, realm_config, request)
        if realm is None or credentials is None:
            return self._finish(self._rejected(realm_name, error), realm)

        if isinstance(realm, CallbackRealm):
            backend = self.backends[realm.kind]
            try:
                if isinstance(backend, CallbackBackend):
                    verdict = await backend.verify_async(realm, credentials)
                else:
                    verdict = backend.verify(realm, credentials)
            except AuthError as e:
                verdict = Verdict.failed(e)
        else:
            verdict = await self.executor.submit(self._verify, realm, credentials)
        return self._finish(self._result(realm_name, credentials.username, realm, verdict), realm)

    def close(self) -> None:
        """Shut down the executor created by ``authenticate_async``."""
        if self._executor is not None:
            self._executor.shutdown(wait=False)

    # Internals

    def _run(
        self, realm_name: str, realm_config: Any, request: Any
    ) -> tuple[VerificationResult, bool]:
        realm, credentials, error = self._prepare(realm_name, realm_config, request)
        if realm is None or credentials is None:
            return self._finish(self._rejected(realm_name, error), realm)
        verdict = self._verify(realm, credentials)
        return self._finish(self._result(realm_name, credentials.username, realm, verdict), realm)

    def _prepare(
        self, realm_name: str, realm_config: Any, request: Any
    ) -> tuple[Realm | None, Credentials | None, AuthError | None]:
        # realm errors take precedence over missing credentials
        try:
            if realm_config is _NO_CONFIG:
                realm = self.get_realm(realm_name)
            else:
                realm = resolve_realm(realm_config)
        except ConfigurationError as e:
            return None, None, e

        try:
            credentials = extract_credentials(authorization_header(request))
        except MissingCredentials as e:
            return realm, None, e
        return realm, credentials, None

    def _verify(self, realm: Realm, credentials: Credentials) -> Verdict:
        backend = self.backends.get(realm.kind)
        if backend is None:
            return Verdict.failed(ConfigurationError(f"No backend for realm kind '{realm.kind}'"))
        try:
            return backend.verify(realm, credentials)
        except AuthError as e:
            return Verdict.failed(e)

    def _rejected(self, realm_name: str, error: AuthError | None) -> VerificationResult:
        return VerificationResult(username="", authenticated=False, error=error, realm=realm_name)

    def _result(
        self, realm_name: str, username: str, realm: Realm, verdict: Verdict
    ) -> VerificationResult:
        return VerificationResult(
            username=username,
            authenticated=verdict.authenticated,
            directory_handle=verdict.handle,
            error=verdict.error,
            backend=realm.kind,
            realm=realm_name,
        )

    def _finish(
        self, result: VerificationResult, realm: Realm | None
    ) -> tuple[VerificationResult, bool]:
        if self.log_events or (realm is not None and realm.logging):
            self._log_event(result)
        return result, result.authenticated

    def _log_event(self, result: VerificationResult) -> None:
        outcome = result.outcome
        level = {"success": logging.INFO, "failure": logging.WARNING}.get(outcome, logging.ERROR)
        message = f'realm="{result.realm}" user="{result.username}" outcome={outcome}'
        if result.error_kind:
            message += f" error={result.error_kind}"
        try:
            self.logger.log(
                level,
                message,
                extra={
                    "realm": result.realm,
                    "username": result.username,
                    "outcome": outcome,
                    "error_kind": result.error_kind,
                    "backend": result.backend,
                },
            )
        except Exception:
            logging.getLogger(__name__).debug("auth event logging failed", exc_info=True)


def _release_verdict(verdict: Any) -> None:
    handle = getattr(verdict, "handle", None)
    if handle is not None:
        handle.close()
