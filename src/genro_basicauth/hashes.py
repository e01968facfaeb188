# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Stored password formats: recognition and verification.

A stored credential is either a one-way hash in a recognized textual format
or a plaintext password. Recognition is an ordered list of ``HashScheme``
entries; the first scheme whose prefix matches owns the value.

Builtin schemes, in priority order::

    bcrypt          $2a$ $2b$ $2y$      (bcrypt)
    sha512_crypt    $6$                 (passlib)
    sha256_crypt    $5$                 (passlib)
    apr_md5_crypt   $apr1$              (passlib, htpasswd -m)
    md5_crypt       $1$                 (passlib)
    pbkdf2_sha256   $pbkdf2-sha256$     (passlib)
    ldap_crypt      {CRYPT}<crypt>      (delegates to the crypt schemes)
    ldap_ssha       {SSHA}              (passlib)
    ldap_sha        {SHA}               (passlib, htpasswd -s)
    ldap_smd5       {SMD5}              (passlib)
    ldap_md5        {MD5}               (passlib)

Values shaped like a modular crypt string (``$id$...``) or an RFC 2307
``{SCHEME}`` value that no scheme claims raise ``CredentialFormatError``, as
do claimed values the scheme cannot parse. Anything else is plaintext and is
compared in constant time.

Traditional 13-character DES crypt is not recognized: its shape is
indistinguishable from a plaintext password.

Example::

    check_password("secret", stored_hash)       # e.g. "$apr1$..." from htpasswd
    check_password("secret", "secret")          # plaintext

    registry = DEFAULT_REGISTRY.copy()
    registry.register(HashScheme("legacy", ("$legacy$",), verify_legacy), first=True)
"""

from __future__ import annotations

import hmac
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

import bcrypt
from passlib import hash as passlib_hash

from .exceptions import CredentialFormatError

__all__ = [
    "HashScheme",
    "HashRegistry",
    "DEFAULT_REGISTRY",
    "check_password",
    "looks_hashed",
]

_MCF_RE = re.compile(r"^\$[A-Za-z0-9-]+\$")
_LDAP_RE = re.compile(r"^\{([A-Za-z0-9-]+)\}")

BCRYPT_MAX_BYTES = 72


@dataclass(frozen=True)
class HashScheme:
    """One recognizable stored-password format.

    Attributes:
        name: Identifier used in logs and for registry lookups.
        prefixes: Textual prefixes this scheme claims.
        verify: ``(password, stored) -> bool``. Raises ValueError or TypeError
            when ``stored`` cannot be parsed.
        case_insensitive: Match prefixes ignoring case (RFC 2307 schemes).
    """

    name: str
    prefixes: tuple[str, ...]
    verify: Callable[[str, str], bool]
    case_insensitive: bool = False

    def claims(self, stored: str) -> bool:
        if self.case_insensitive:
            head = stored[: max(len(p) for p in self.prefixes)].upper()
            return head.startswith(tuple(p.upper() for p in self.prefixes))
        return stored.startswith(self.prefixes)


def looks_hashed(stored: str) -> bool:
    """True when ``stored`` has the shape of a hash encoding."""
    return bool(_MCF_RE.match(stored) or _LDAP_RE.match(stored))


def _verify_bcrypt(password: str, stored: str) -> bool:
    secret = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return bcrypt.checkpw(secret, stored.encode("ascii"))


def _passlib(handler: object) -> Callable[[str, str], bool]:
    def verify(password: str, stored: str) -> bool:
        return bool(handler.verify(password, stored))  # type: ignore[attr-defined]

    return verify


def _passlib_ldap(handler: object, scheme: str) -> Callable[[str, str], bool]:
    prefix = "{%s}" % scheme

    def verify(password: str, stored: str) -> bool:
        # passlib only accepts the upper-case scheme tag
        normalized = prefix + stored[len(prefix) :]
        return bool(handler.verify(password, normalized))  # type: ignore[attr-defined]

    return verify


_CRYPT_SCHEMES: tuple[HashScheme, ...] = (
    HashScheme("bcrypt", ("$2a$", "$2b$", "$2y$"), _verify_bcrypt),
    HashScheme("sha512_crypt", ("$6$",), _passlib(passlib_hash.sha512_crypt)),
    HashScheme("sha256_crypt", ("$5$",), _passlib(passlib_hash.sha256_crypt)),
    HashScheme("apr_md5_crypt", ("$apr1$",), _passlib(passlib_hash.apr_md5_crypt)),
    HashScheme("md5_crypt", ("$1$",), _passlib(passlib_hash.md5_crypt)),
)


def _verify_ldap_crypt(password: str, stored: str) -> bool:
    inner = stored[len("{CRYPT}") :]
    for scheme in _CRYPT_SCHEMES:
        if scheme.claims(inner):
            return scheme.verify(password, inner)
    raise ValueError("{CRYPT} value does not wrap a supported crypt format")


_BUILTIN_SCHEMES: tuple[HashScheme, ...] = (
    *_CRYPT_SCHEMES,
    HashScheme("pbkdf2_sha256", ("$pbkdf2-sha256$",), _passlib(passlib_hash.pbkdf2_sha256)),
    HashScheme("ldap_crypt", ("{CRYPT}",), _verify_ldap_crypt, case_insensitive=True),
    HashScheme(
        "ldap_ssha",
        ("{SSHA}",),
        _passlib_ldap(passlib_hash.ldap_salted_sha1, "SSHA"),
        case_insensitive=True,
    ),
    HashScheme(
        "ldap_sha", ("{SHA}",), _passlib_ldap(passlib_hash.ldap_sha1, "SHA"), case_insensitive=True
    ),
    HashScheme(
        "ldap_smd5",
        ("{SMD5}",),
        _passlib_ldap(passlib_hash.ldap_salted_md5, "SMD5"),
        case_insensitive=True,
    ),
    HashScheme(
        "ldap_md5", ("{MD5}",), _passlib_ldap(passlib_hash.ldap_md5, "MD5"), case_insensitive=True
    ),
)


class HashRegistry:
    """Ordered collection of hash schemes with plaintext fallback.

    Registries are not mutated while serving requests; build a copy, register
    extra schemes, then hand it to the authenticator.
    """

    __slots__ = ("_schemes",)

    def __init__(self, schemes: Iterable[HashScheme] = ()) -> None:
        self._schemes: list[HashScheme] = list(schemes)

    @property
    def schemes(self) -> tuple[HashScheme, ...]:
        return tuple(self._schemes)

    def register(self, scheme: HashScheme, *, first: bool = False) -> None:
        """Add a scheme at the end, or ahead of all others with ``first=True``.

        Raises:
            ValueError: A scheme with the same name is already registered.
        """
        if any(s.name == scheme.name for s in self._schemes):
            raise ValueError(f"Hash scheme '{scheme.name}' already registered")
        if first:
            self._schemes.insert(0, scheme)
        else:
            self._schemes.append(scheme)

    def copy(self) -> HashRegistry:
        return HashRegistry(self._schemes)

    def identify(self, stored: str) -> HashScheme | None:
        """Return the scheme owning ``stored``, or None for plaintext.

        Raises:
            CredentialFormatError: ``stored`` looks hashed but no scheme claims it.
        """
        for scheme in self._schemes:
            if scheme.claims(stored):
                return scheme
        if looks_hashed(stored):
            raise CredentialFormatError("Unrecognized password hash format")
        return None

    def check(self, password: str, stored: str) -> bool:
        """Verify ``password`` against a stored hash or plaintext value.

        Raises:
            CredentialFormatError: stored value claims a format but is malformed.
        """
        scheme = self.identify(stored)
        if scheme is None:
            return hmac.compare_digest(password.encode("utf-8"), stored.encode("utf-8"))
        try:
            return scheme.verify(password, stored)
        except (ValueError, TypeError) as e:
            raise CredentialFormatError(f"Malformed {scheme.name} hash") from e


DEFAULT_REGISTRY = HashRegistry(_BUILTIN_SCHEMES)


def check_password(password: str, stored: str, registry: HashRegistry | None = None) -> bool:
    """Module-level shortcut for ``(registry or DEFAULT_REGISTRY).check()``."""
    return (registry or DEFAULT_REGISTRY).check(password, stored)
