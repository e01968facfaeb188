# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Tests for Basic credential extraction and header lookup."""

import base64

import pytest

from conftest import basic
from genro_basicauth.credentials import Credentials, authorization_header, extract_credentials
from genro_basicauth.datastructures import Headers, headers_from_scope
from genro_basicauth.exceptions import MissingCredentials


class TestExtractCredentials:
    """Decoding of Authorization header values."""

    def test_simple(self) -> None:
        creds = extract_credentials(basic("alice", "secret"))
        assert creds == Credentials("alice", "secret")

    def test_password_keeps_colons(self) -> None:
        creds = extract_credentials(basic("alice", "s3cr:t:x"))
        assert creds.username == "alice"
        assert creds.password == "s3cr:t:x"

    def test_empty_password(self) -> None:
        creds = extract_credentials(basic("alice", ""))
        assert creds.username == "alice"
        assert creds.password == ""

    def test_empty_username(self) -> None:
        creds = extract_credentials(basic("", "secret"))
        assert creds.username == ""

    def test_scheme_case_insensitive(self) -> None:
        token = base64.b64encode(b"alice:secret").decode()
        assert extract_credentials(f"BASIC {token}").username == "alice"
        assert extract_credentials(f"basic {token}").username == "alice"

    def test_bytes_header(self) -> None:
        assert extract_credentials(basic("alice", "pw").encode()).password == "pw"

    def test_utf8_credentials(self) -> None:
        creds = extract_credentials(basic("jürgen", "pässword"))
        assert creds.username == "jürgen"
        assert creds.password == "pässword"

    def test_latin1_fallback(self) -> None:
        token = base64.b64encode("jürgen:pw".encode("latin-1")).decode()
        assert extract_credentials(f"Basic {token}").username == "jürgen"

    @pytest.mark.parametrize("value", [None, "", b""])
    def test_missing(self, value) -> None:
        with pytest.raises(MissingCredentials):
            extract_credentials(value)

    def test_other_scheme(self) -> None:
        with pytest.raises(MissingCredentials, match="scheme"):
            extract_credentials("Bearer tk_abc123")

    def test_scheme_without_token(self) -> None:
        with pytest.raises(MissingCredentials):
            extract_credentials("Basic")

    def test_invalid_base64(self) -> None:
        with pytest.raises(MissingCredentials, match="Base64"):
            extract_credentials("Basic !!!not-base64!!!")

    def test_no_colon(self) -> None:
        token = base64.b64encode(b"alicesecret").decode()
        with pytest.raises(MissingCredentials, match="':'"):
            extract_credentials(f"Basic {token}")

    def test_missing_is_not_fatal(self) -> None:
        with pytest.raises(MissingCredentials) as exc_info:
            extract_credentials(None)
        assert exc_info.value.fatal is False
        assert exc_info.value.error_kind == "MissingCredentials"

    def test_repr_masks_password(self) -> None:
        creds = extract_credentials(basic("alice", "secret"))
        assert "secret" not in repr(creds)
        assert "alice" in repr(creds)


class TestAuthorizationHeader:
    """Header lookup across request shapes."""

    def test_none(self) -> None:
        assert authorization_header(None) is None

    def test_plain_mapping(self) -> None:
        assert authorization_header({"Authorization": "Basic abc"}) == "Basic abc"

    def test_asgi_scope(self) -> None:
        scope = {"type": "http", "headers": [(b"authorization", b"Basic abc")]}
        assert authorization_header(scope) == "Basic abc"

    def test_headers_instance(self) -> None:
        assert authorization_header(Headers({"AUTHORIZATION": "Basic abc"})) == "Basic abc"

    def test_object_with_headers(self) -> None:
        class Request:
            headers = {"authorization": "Basic abc"}

        assert authorization_header(Request()) == "Basic abc"

    def test_object_without_headers(self) -> None:
        assert authorization_header(object()) is None

    def test_absent(self) -> None:
        assert authorization_header({"host": "example.com"}) is None


class TestHeaders:
    """Case-insensitive header collection."""

    def test_bytes_tuples(self) -> None:
        headers = Headers([(b"Content-Type", b"text/plain"), (b"X-Tag", b"a"), (b"x-tag", b"b")])
        assert headers["content-type"] == "text/plain"
        assert headers.getlist("X-TAG") == ["a", "b"]
        assert headers.keys() == ["content-type", "x-tag"]
        assert len(headers) == 3

    def test_contains_and_missing(self) -> None:
        headers = Headers({"Host": "example.com"})
        assert "host" in headers
        assert "cookie" not in headers
        assert 42 not in headers
        with pytest.raises(KeyError):
            headers["cookie"]

    def test_repr_masks_authorization(self) -> None:
        headers = Headers({"Authorization": "Basic YWxpY2U6c2VjcmV0"})
        assert "YWxpY2U6c2VjcmV0" not in repr(headers)

    def test_from_scope(self) -> None:
        assert headers_from_scope({"headers": [(b"host", b"a")]}).get("host") == "a"
        assert len(headers_from_scope({})) == 0
