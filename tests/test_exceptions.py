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

"""Tests for exception classes."""

import pytest

from genro_basicauth.exceptions import (
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


class TestHTTPException:
    """Tests for HTTPException class."""

    def test_basic_creation(self) -> None:
        exc = HTTPException(404, detail="Not found")
        assert exc.status_code == 404
        assert exc.detail == "Not found"
        assert exc.headers is None

    def test_dict_headers_become_tuples(self) -> None:
        exc = HTTPException(403, headers={"X-Reason": "ip"})
        assert exc.headers == [("X-Reason", "ip")]

    def test_str_returns_detail(self) -> None:
        assert str(HTTPException(400, detail="Bad request")) == "Bad request"

    def test_repr(self) -> None:
        assert repr(HTTPException(418, "teapot")) == "HTTPException(status_code=418, detail='teapot')"


class TestHTTPUnauthorized:
    """Tests for the Basic challenge."""

    def test_challenge_header(self) -> None:
        exc = HTTPUnauthorized("Admin area")
        assert exc.status_code == 401
        assert exc.detail == "Unauthorized"
        assert exc.realm == "Admin area"
        assert exc.headers == [("WWW-Authenticate", 'Basic realm="Admin area"')]

    def test_realm_quoting(self) -> None:
        exc = HTTPUnauthorized('a\\b"c')
        assert exc.headers == [("WWW-Authenticate", 'Basic realm="a\\\\b\\"c"')]

    def test_is_http_exception(self) -> None:
        assert isinstance(HTTPUnauthorized("x"), HTTPException)


class TestTaxonomy:
    """error_kind and fatal flags of authentication errors."""

    @pytest.mark.parametrize(
        "cls, kind, fatal",
        [
            (MissingCredentials, "MissingCredentials", False),
            (ConfigurationError, "ConfigurationError", True),
            (FileNotFound, "FileNotFound", True),
            (FileUnreadable, "FileUnreadable", True),
            (DirectoryConnectionError, "ConnectionError", False),
            (TLSError, "TLSError", False),
            (BindError, "BindError", False),
            (SearchError, "SearchError", False),
            (UserNotFound, "UserNotFound", False),
            (AmbiguousUser, "AmbiguousUser", False),
            (CredentialFormatError, "CredentialFormatError", False),
            (CallbackError, "CallbackError", True),
        ],
    )
    def test_flags(self, cls: type[AuthError], kind: str, fatal: bool) -> None:
        exc = cls("detail")
        assert isinstance(exc, AuthError)
        assert exc.error_kind == kind
        assert exc.fatal is fatal

    def test_file_errors_are_configuration_errors(self) -> None:
        assert issubclass(FileNotFound, ConfigurationError)
        assert issubclass(FileUnreadable, ConfigurationError)

    def test_repr(self) -> None:
        assert repr(UserNotFound("alice")) == "UserNotFound('alice')"
