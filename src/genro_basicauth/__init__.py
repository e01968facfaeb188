# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""genro-basicauth - HTTP Basic authentication with pluggable realms.

Main components:
    BasicAuthenticator: Realm-aware orchestrator, one call per request
    VerificationResult: Decision, identity, error and directory handle
    resolve_realm: Raw realm config to typed realm

Realms:
    StaticRealm: Single username/password
    PasswdFileRealm: htpasswd-style credential file
    DirectoryRealm: LDAP / Active Directory bind-and-search
    CallbackRealm: Caller-supplied predicate

Middleware:
    BasicAuthMiddleware: Path prefix to realm, 401 challenge on failure
    ErrorMiddleware: Exception handling and error responses

Usage:
    from genro_basicauth import BasicAuthenticator

    auth = BasicAuthenticator()
    result, ok = auth.authenticate(
        "Admin area", {"path": "/etc/app/passwd"}, {"authorization": header}
    )
"""

__version__ = "0.1.0"

from .authenticator import BasicAuthenticator, VerificationResult
from .credentials import Credentials, authorization_header, extract_credentials
from .exceptions import (
    AmbiguousUser,
    AuthError,
    BindError,
    CallbackError,
    ConfigurationError,
    CredentialFormatError,
    DirectoryConnectionError,
    FileNotFound,
    FileUnreadable,
    HTTPException,
    HTTPUnauthorized,
    MissingCredentials,
    SearchError,
    TLSError,
    UserNotFound,
)
from .hashes import DEFAULT_REGISTRY, HashRegistry, HashScheme, check_password
from .middleware.authentication import BasicAuthMiddleware
from .middleware.errors import ErrorMiddleware
from .realms import (
    CallbackRealm,
    DirectoryRealm,
    PasswdFileRealm,
    Realm,
    SearchScope,
    StaticRealm,
    TlsVerify,
    resolve_realm,
)

__all__ = [
    "__version__",
    "BasicAuthenticator",
    "VerificationResult",
    "Credentials",
    "authorization_header",
    "extract_credentials",
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
    "HTTPException",
    "HTTPUnauthorized",
    "HashScheme",
    "HashRegistry",
    "DEFAULT_REGISTRY",
    "check_password",
    "BasicAuthMiddleware",
    "ErrorMiddleware",
    "StaticRealm",
    "PasswdFileRealm",
    "DirectoryRealm",
    "CallbackRealm",
    "Realm",
    "SearchScope",
    "TlsVerify",
    "resolve_realm",
]
