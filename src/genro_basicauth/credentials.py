# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Credential extraction from ``Authorization: Basic`` headers.

The payload is ``base64(username ":" password)``. The split happens on the
first colon, so passwords may contain colons while usernames cannot.
Decoding tries UTF-8 first and falls back to Latin-1, the historical
default of browsers that ignore the ``charset`` auth-param.

Any problem (no header, other scheme, bad Base64, no colon) raises
``MissingCredentials``; callers short-circuit without invoking a verifier.

Example::

    creds = extract_credentials("Basic YWxpY2U6czNjcjp0")
    creds.username  # "alice"
    creds.password  # "s3cr:t"
"""

from __future__ import annotations

import base64
import binascii
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .datastructures import Headers, headers_from_scope
from .exceptions import MissingCredentials

__all__ = ["Credentials", "extract_credentials", "authorization_header"]


@dataclass(frozen=True)
class Credentials:
    """Username/password pair decoded from one request."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, password='***')"


def authorization_header(request: Any) -> str | None:
    """Read the Authorization header from a request-like value.

    Accepted shapes:
        - ``None`` (no request, no header)
        - ``Headers`` instance
        - ASGI scope (mapping with a ``headers`` list of byte tuples)
        - object with a ``headers`` attribute (framework request)
        - plain mapping of header name to value
    """
    if request is None:
        return None
    if isinstance(request, Headers):
        return request.get("authorization")
    if isinstance(request, Mapping):
        if isinstance(request.get("headers"), (list, tuple)):
            return headers_from_scope(request).get("authorization")
        return Headers(request).get("authorization")
    headers = getattr(request, "headers", None)
    if headers is None:
        return None
    if not isinstance(headers, Headers):
        headers = Headers(headers)
    return headers.get("authorization")


def extract_credentials(header_value: str | bytes | None) -> Credentials:
    """Decode a Basic Authorization header value.

    Raises:
        MissingCredentials: header absent, not Basic, or malformed.
    """
    if not header_value:
        raise MissingCredentials("Authorization header missing")
    if isinstance(header_value, bytes):
        header_value = header_value.decode("latin-1")

    scheme, _, token = header_value.strip().partition(" ")
    if scheme.lower() != "basic":
        raise MissingCredentials(f"Unsupported authorization scheme {scheme!r}")
    token = token.strip()
    if not token:
        raise MissingCredentials("Basic credentials missing")

    try:
        raw = base64.b64decode(token, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MissingCredentials("Basic credentials are not valid Base64") from e

    try:
        decoded = raw.decode("utf-8")
    except UnicodeDecodeError:
        decoded = raw.decode("latin-1")

    username, sep, password = decoded.partition(":")
    if not sep:
        raise MissingCredentials("Basic credentials lack a ':' separator")
    return Credentials(username=username, password=password)
