# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""HTTP Basic authentication middleware for ASGI applications.

Maps path prefixes to realms and authenticates each matching HTTP request
with a BasicAuthenticator. Unmatched paths pass through untouched.

Outcomes:
    success: scope["auth"] is set and the request continues.
    failure: HTTPUnauthorized(realm) is raised; ErrorMiddleware renders
        401 with ``WWW-Authenticate: Basic realm="<realm>"``.
    fatal (misconfigured realm, faulting callback): the AuthError itself is
        raised; ErrorMiddleware renders 500.

scope["auth"] format:
    {"identity": "alice", "realm": "Admin area", "backend": "passwd",
     "directory_handle": None}

A directory handle (``return_ldap_handle``) is valid while the downstream
app runs and is closed when it returns.

Config:
    realms: Dict of {realm_name: realm_config}.
    routes: Dict of {path_prefix: realm_name}. Optional when exactly one
        realm is configured (then it protects "/").
    log_events: Log one event per request. Default False.

Example:
    Enable in config.toml::

        [middleware]
        basicauth = "on"

        [basicauth_middleware.routes]
        "/admin" = "Admin area"
        "/ops" = "Operators"

        [basicauth_middleware.realms."Admin area"]
        username = "admin"
        password = "$apr1$..."

        [basicauth_middleware.realms.Operators]
        host = "ldap.example.com"
        basedn = "ou=people,dc=example,dc=com"
        tls_verify = "require"
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from . import BaseMiddleware, with_headers
from ..authentication.passwd import PasswdFileCache
from ..authenticator import BasicAuthenticator
from ..exceptions import ConfigurationError, HTTPUnauthorized

if TYPE_CHECKING:
    from ..types import ASGIApp, Receive, Scope, Send

__all__ = ["BasicAuthMiddleware"]


def _normalize_prefix(prefix: str) -> str:
    prefix = "/" + prefix.strip().strip("/")
    return prefix


class BasicAuthMiddleware(BaseMiddleware):
    """Realm-per-prefix HTTP Basic authentication.

    Attributes:
        authenticator: The BasicAuthenticator holding resolved realms.

    Class Attributes:
        middleware_name: "basicauth" - identifier for config.
        middleware_order: 400 - runs after error handling.
        middleware_default: False - disabled by default.
    """

    middleware_name = "basicauth"
    middleware_order = 400
    middleware_default = False

    __slots__ = ("authenticator", "_routes")

    def __init__(
        self,
        app: ASGIApp,
        realms: dict[str, Any] | None = None,
        routes: dict[str, str] | None = None,
        log_events: bool = False,
        authenticator: BasicAuthenticator | None = None,
        **kwargs: Any,
    ) -> None:
        """Initialize the middleware and resolve every realm once.

        Args:
            app: Next ASGI application in the middleware chain.
            realms: Realm configurations by name.
            routes: Path prefix to realm name.
            log_events: Log one event per authenticated request.
            authenticator: Pre-built authenticator (realms are added to it).
            **kwargs: Additional arguments passed to BaseMiddleware.

        Raises:
            ConfigurationError: Invalid realm, unknown realm in routes, or no
                routes with several realms.
        """
        super().__init__(app, **kwargs)
        self.authenticator = authenticator or BasicAuthenticator(
            log_events=log_events, passwd_cache=PasswdFileCache()
        )
        for name, config in (realms or {}).items():
            if hasattr(config, "as_dict"):
                config = config.as_dict()
            self.authenticator.register_realm(name, config)

        known = self.authenticator.realms
        if routes is None:
            if len(known) != 1:
                raise ConfigurationError("'routes' is required unless exactly one realm is set")
            routes = {"/": next(iter(known))}
        elif hasattr(routes, "as_dict"):
            routes = routes.as_dict()  # type: ignore[union-attr]

        for prefix, realm_name in routes.items():
            if realm_name not in known:
                raise ConfigurationError(f"Route '{prefix}' refers to unknown realm '{realm_name}'")
        # longest prefix first
        self._routes: list[tuple[str, str]] = sorted(
            ((_normalize_prefix(p), r) for p, r in routes.items()),
            key=lambda item: len(item[0]),
            reverse=True,
        )

    def realm_for(self, path: str) -> str | None:
        """Return the realm protecting ``path``, or None."""
        for prefix, realm_name in self._routes:
            if prefix == "/" or path == prefix or path.startswith(prefix + "/"):
                return realm_name
        return None

    @with_headers
    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """Authenticate HTTP requests under a protected prefix.

        Note:
            Uses @with_headers to populate scope["_headers"].
            Non-HTTP scopes and unprotected paths pass through.
        """
        realm_name = self.realm_for(scope.get("path", "/")) if scope["type"] == "http" else None
        if realm_name is None:
            await self.app(scope, receive, send)
            return

        realm = self.authenticator.get_realm(realm_name)
        result, ok = await self.authenticator.authenticate_async(
            realm_name, realm, scope["_headers"]
        )
        if not ok:
            result.release()
            result.raise_for_error()
            raise HTTPUnauthorized(realm_name)

        scope["auth"] = {
            "identity": result.username,
            "realm": realm_name,
            "backend": result.backend,
            "directory_handle": result.directory_handle,
        }
        try:
            await self.app(scope, receive, send)
        finally:
            result.release()
