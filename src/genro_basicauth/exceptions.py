# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Exception classes for genro-basicauth.

Two families live here:

1. HTTP exceptions raised by the ASGI middleware layer and rendered by
   ``ErrorMiddleware`` (``HTTPException``, ``HTTPUnauthorized``).
2. The authentication error taxonomy raised by verifiers and carried on a
   ``VerificationResult``. Every class exposes two class attributes:

   - ``error_kind``: stable name used in structured log events
   - ``fatal``: True when the error means the realm is misconfigured or caller
     code faulted, False when it is an ordinary authentication failure

Taxonomy
--------
::

    AuthError
    ├── MissingCredentials         (no/invalid Authorization header)
    ├── ConfigurationError   fatal (realm cannot be resolved or is invalid)
    │   ├── FileNotFound     fatal (passwd file missing)
    │   └── FileUnreadable   fatal (passwd file not readable)
    ├── DirectoryConnectionError   (kind "ConnectionError")
    ├── TLSError                   (STARTTLS negotiation failed)
    ├── BindError                  (administrative bind rejected)
    ├── SearchError                (server refused the search, e.g. noSuchObject)
    ├── UserNotFound               (search returned nothing)
    ├── AmbiguousUser              (search returned more than one entry)
    ├── CredentialFormatError      (stored hash claims a format but is broken)
    └── CallbackError        fatal (caller predicate raised)

Non-fatal errors converge to ``authenticated=False``. Fatal errors converge
too, but callers are expected to surface them on their error channel
(``VerificationResult.raise_for_error()``).

Example:
    >>> raise HTTPUnauthorized(realm="Admin area")
    >>> raise FileNotFound("/etc/app/passwd")
"""

from __future__ import annotations

__all__ = [
    "HTTPException",
    "HTTPUnauthorized",
    "AuthError",
    "MissingCredentials",
    "ConfigurationError",
    "FileNotFound",
    "FileUnreadable",
    "DirectoryConnectionError",
    "TLSError",
    "BindError",
    "SearchError",
    "UserNotFound",
    "AmbiguousUser",
    "CredentialFormatError",
    "CallbackError",
]


class HTTPException(Exception):
    """
    HTTP exception with status code and detail.

    Attributes:
        status_code: HTTP status code (expected 4xx or 5xx, not validated)
        detail: Error detail message
        headers: Response headers as list of tuples (supports duplicate names)
    """

    def __init__(
        self,
        status_code: int,
        detail: str = "",
        headers: dict[str, str] | list[tuple[str, str]] | None = None,
    ) -> None:
        self.status_code = status_code
        self.detail = detail
        if headers is None:
            self.headers: list[tuple[str, str]] | None = None
        elif isinstance(headers, dict):
            self.headers = list(headers.items())
        else:
            self.headers = list(headers)
        super().__init__(detail)

    def __repr__(self) -> str:
        return f"HTTPException(status_code={self.status_code}, detail={self.detail!r})"


class HTTPUnauthorized(HTTPException):
    """HTTP 401 carrying a Basic challenge for the given realm."""

    def __init__(self, realm: str, detail: str = "Unauthorized") -> None:
        escaped = realm.replace("\\", "\\\\").replace('"', '\\"')
        super().__init__(
            401,
            detail=detail,
            headers={"WWW-Authenticate": f'Basic realm="{escaped}"'},
        )
        self.realm = realm


class AuthError(Exception):
    """Base class of the authentication error taxonomy."""

    error_kind: str = "AuthError"
    fatal: bool = False

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({str(self)!r})"


class MissingCredentials(AuthError):
    """Authorization header absent, not Basic, or undecodable."""

    error_kind = "MissingCredentials"


class ConfigurationError(AuthError):
    """Realm configuration cannot be resolved or is invalid."""

    error_kind = "ConfigurationError"
    fatal = True


class FileNotFound(ConfigurationError):
    """Configured passwd file does not exist."""

    error_kind = "FileNotFound"


class FileUnreadable(ConfigurationError):
    """Configured passwd file exists but cannot be read."""

    error_kind = "FileUnreadable"


class DirectoryConnectionError(AuthError):
    """Directory server unreachable or connection dropped."""

    error_kind = "ConnectionError"


class TLSError(AuthError):
    """STARTTLS negotiation failed."""

    error_kind = "TLSError"


class BindError(AuthError):
    """Administrative bind rejected."""

    error_kind = "BindError"


class SearchError(AuthError):
    """Directory search failed on the server (wrong basedn, access rights)."""

    error_kind = "SearchError"


class UserNotFound(AuthError):
    """Directory search returned no entry for the username."""

    error_kind = "UserNotFound"


class AmbiguousUser(AuthError):
    """Directory search returned more than one entry for the username."""

    error_kind = "AmbiguousUser"


class CredentialFormatError(AuthError):
    """Stored credential claims a hash format but cannot be parsed."""

    error_kind = "CredentialFormatError"


class CallbackError(AuthError):
    """Caller-supplied predicate raised. Original exception is ``__cause__``."""

    error_kind = "CallbackError"
    fatal = True
