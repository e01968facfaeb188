# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Tests for stored password recognition and verification."""

import base64
import hashlib

import bcrypt
import pytest
from passlib import hash as passlib_hash

from genro_basicauth.exceptions import CredentialFormatError
from genro_basicauth.hashes import (
    DEFAULT_REGISTRY,
    HashRegistry,
    HashScheme,
    check_password,
    looks_hashed,
)


def ldap_sha(password: str) -> str:
    return "{SHA}" + base64.b64encode(hashlib.sha1(password.encode()).digest()).decode()


class TestPlaintext:
    def test_match(self) -> None:
        assert check_password("secret", "secret") is True

    def test_mismatch(self) -> None:
        assert check_password("secret", "Secret") is False

    def test_empty(self) -> None:
        assert check_password("", "") is True
        assert check_password("", "x") is False

    def test_unicode(self) -> None:
        assert check_password("pässword", "pässword") is True

    def test_unbalanced_brace_is_plaintext(self) -> None:
        assert DEFAULT_REGISTRY.identify("{notahash") is None
        assert check_password("{notahash", "{notahash") is True


class TestBcrypt:
    @pytest.fixture(scope="class")
    def stored(self) -> str:
        return bcrypt.hashpw(b"secret", bcrypt.gensalt(rounds=4)).decode()

    def test_match(self, stored: str) -> None:
        assert DEFAULT_REGISTRY.identify(stored).name == "bcrypt"
        assert check_password("secret", stored) is True

    def test_mismatch(self, stored: str) -> None:
        assert check_password("wrong", stored) is False

    def test_long_password_truncated(self) -> None:
        password = "x" * 80
        stored = bcrypt.hashpw(password.encode()[:72], bcrypt.gensalt(rounds=4)).decode()
        assert check_password(password, stored) is True

    def test_malformed(self) -> None:
        with pytest.raises(CredentialFormatError, match="bcrypt"):
            check_password("secret", "$2b$broken")


class TestCryptFamily:
    @pytest.mark.parametrize(
        "name, stored",
        [
            ("sha512_crypt", passlib_hash.sha512_crypt.hash("secret", rounds=1000)),
            ("sha256_crypt", passlib_hash.sha256_crypt.hash("secret", rounds=1000)),
            ("apr_md5_crypt", passlib_hash.apr_md5_crypt.hash("secret")),
            ("md5_crypt", passlib_hash.md5_crypt.hash("secret")),
            ("pbkdf2_sha256", passlib_hash.pbkdf2_sha256.hash("secret", rounds=1000)),
        ],
    )
    def test_verify(self, name: str, stored: str) -> None:
        assert DEFAULT_REGISTRY.identify(stored).name == name
        assert check_password("secret", stored) is True
        assert check_password("Secret", stored) is False

    def test_malformed_sha512(self) -> None:
        with pytest.raises(CredentialFormatError):
            check_password("secret", "$6$garbage")


class TestLdapSchemes:
    def test_sha(self) -> None:
        stored = ldap_sha("secret")
        assert DEFAULT_REGISTRY.identify(stored).name == "ldap_sha"
        assert check_password("secret", stored) is True
        assert check_password("wrong", stored) is False

    def test_sha_lowercase_tag(self) -> None:
        stored = "{sha}" + ldap_sha("secret")[5:]
        assert check_password("secret", stored) is True

    def test_ssha(self) -> None:
        stored = passlib_hash.ldap_salted_sha1.hash("secret")
        assert stored.startswith("{SSHA}")
        assert check_password("secret", stored) is True
        assert check_password("wrong", stored) is False

    def test_smd5_and_md5(self) -> None:
        assert check_password("secret", passlib_hash.ldap_salted_md5.hash("secret")) is True
        assert check_password("secret", passlib_hash.ldap_md5.hash("secret")) is True

    def test_crypt_wrapper(self) -> None:
        stored = "{CRYPT}" + passlib_hash.md5_crypt.hash("secret")
        assert DEFAULT_REGISTRY.identify(stored).name == "ldap_crypt"
        assert check_password("secret", stored) is True
        assert check_password("wrong", stored) is False

    def test_crypt_wrapper_unsupported(self) -> None:
        with pytest.raises(CredentialFormatError):
            check_password("secret", "{CRYPT}abJnggxhB/yWI")


class TestUnknownFormats:
    @pytest.mark.parametrize("stored", ["$argon2id$v=19$m=65536$abc", "{CLEARTEXT}secret", "$9$x"])
    def test_unrecognized_hash(self, stored: str) -> None:
        assert looks_hashed(stored)
        with pytest.raises(CredentialFormatError, match="Unrecognized"):
            check_password("secret", stored)

    def test_error_is_not_fatal(self) -> None:
        with pytest.raises(CredentialFormatError) as exc_info:
            check_password("secret", "$argon2id$v=19$x")
        assert exc_info.value.fatal is False


class TestHashRegistry:
    def test_register_first_takes_priority(self) -> None:
        registry = DEFAULT_REGISTRY.copy()
        registry.register(
            HashScheme("reversed", ("$rev$",), lambda pw, stored: stored[5:] == pw[::-1]),
            first=True,
        )
        assert registry.schemes[0].name == "reversed"
        assert check_password("abc", "$rev$cba", registry) is True
        assert check_password("abc", "$rev$abc", registry) is False

    def test_copy_leaves_default_untouched(self) -> None:
        registry = DEFAULT_REGISTRY.copy()
        registry.register(HashScheme("custom", ("$custom$",), lambda pw, stored: True))
        assert all(s.name != "custom" for s in DEFAULT_REGISTRY.schemes)
        with pytest.raises(CredentialFormatError):
            check_password("x", "$custom$x")

    def test_duplicate_name_rejected(self) -> None:
        registry = DEFAULT_REGISTRY.copy()
        with pytest.raises(ValueError, match="already registered"):
            registry.register(HashScheme("bcrypt", ("$2x$",), lambda pw, stored: True))

    def test_empty_registry_treats_hash_shapes_as_errors(self) -> None:
        registry = HashRegistry()
        assert registry.check("secret", "secret") is True
        with pytest.raises(CredentialFormatError):
            registry.check("secret", ldap_sha("secret"))

    def test_case_insensitive_claim(self) -> None:
        scheme = HashScheme("x", ("{X}",), lambda pw, stored: True, case_insensitive=True)
        assert scheme.claims("{x}abc")
        assert not scheme.claims("{y}abc")
