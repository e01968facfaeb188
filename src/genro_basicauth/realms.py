# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Realm configurations and backend resolution.

A realm configuration comes in one of four shapes. ``resolve_realm`` turns
the raw value (mapping, ``as_dict()`` object, or callable) into exactly one
typed variant, validating it once so requests never re-inspect raw config.

Precedence (first match wins)::

    username + password   → StaticRealm       (all other keys ignored)
    path                  → PasswdFileRealm
    host                  → DirectoryRealm
    callable              → CallbackRealm

Raw directory keys and defaults::

    host                (required)
    port                389
    basedn              ""
    binddn / bindpw     None (no administrative bind); set both or neither
    scope               "sub"        base | one | sub
    filter              "(uid=%s)"   exactly one %s placeholder
    timeout             120          seconds, connect and per-operation
    version             3            2 | 3
    start_tls           True
    tls_verify          "optional"   none | optional | require
    cafile              None
    debug               False
    return_ldap_handle  False
    logging             False        (accepted by every realm shape)

Example::

    realm = resolve_realm({"username": "admin", "password": "$apr1$..."})
    isinstance(realm, StaticRealm)  # True

    realm = resolve_realm({"host": "ldap.example.com", "basedn": "dc=example,dc=com"})
    realm.filter  # "(uid=%s)"
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from .exceptions import ConfigurationError
from .types import PasswordCheck

__all__ = [
    "StaticRealm",
    "PasswdFileRealm",
    "DirectoryRealm",
    "CallbackRealm",
    "Realm",
    "TlsVerify",
    "SearchScope",
    "resolve_realm",
]


class TlsVerify(str, Enum):
    """Certificate verification policy for STARTTLS."""

    NONE = "none"
    OPTIONAL = "optional"
    REQUIRE = "require"


class SearchScope(str, Enum):
    BASE = "base"
    ONE = "one"
    SUB = "sub"


@dataclass(frozen=True)
class StaticRealm:
    username: str
    password: str
    logging: bool = False

    kind = "static"

    def __repr__(self) -> str:
        return f"StaticRealm(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class PasswdFileRealm:
    path: str
    logging: bool = False

    kind = "passwd"


@dataclass(frozen=True)
class DirectoryRealm:
    host: str
    port: int = 389
    basedn: str = ""
    binddn: str | None = None
    bindpw: str | None = None
    scope: SearchScope = SearchScope.SUB
    filter: str = "(uid=%s)"
    timeout: float = 120
    version: int = 3
    start_tls: bool = True
    tls_verify: TlsVerify = TlsVerify.OPTIONAL
    cafile: str | None = None
    debug: bool = False
    return_ldap_handle: bool = False
    logging: bool = False

    kind = "directory"

    def __repr__(self) -> str:
        return (
            f"DirectoryRealm(host={self.host!r}, port={self.port}, basedn={self.basedn!r}, "
            f"binddn={self.binddn!r}, start_tls={self.start_tls}, "
            f"tls_verify={self.tls_verify.value!r})"
        )


@dataclass(frozen=True)
class CallbackRealm:
    check: PasswordCheck
    logging: bool = False

    kind = "callback"


Realm = Union[StaticRealm, PasswdFileRealm, DirectoryRealm, CallbackRealm]

_REALM_TYPES = (StaticRealm, PasswdFileRealm, DirectoryRealm, CallbackRealm)


def _as_dict(value: Any) -> Any:
    if hasattr(value, "as_dict"):
        return value.as_dict()
    return value


def _flag(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("on", "true", "yes", "1"):
            return True
        if lowered in ("off", "false", "no", "0", ""):
            return False
    raise ConfigurationError(f"'{key}' must be a boolean, got {value!r}")


def _int(value: Any, key: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"'{key}' must be an integer, got {value!r}") from None


def _enum(enum_cls: type[Enum], value: Any, key: str) -> Any:
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)  # type: ignore[attr-defined]
        raise ConfigurationError(f"'{key}' must be one of {allowed}, got {value!r}") from None


def _directory_realm(config: dict[str, Any], logging: bool) -> DirectoryRealm:
    host = str(config["host"]).strip()
    if not host:
        raise ConfigurationError("'host' must not be empty")

    search_filter = str(config.get("filter") or "(uid=%s)")
    placeholders = search_filter.count("%s")
    if placeholders != 1:
        raise ConfigurationError(
            f"'filter' must contain exactly one %s placeholder, found {placeholders}"
        )
    try:
        search_filter % "username"
    except (TypeError, ValueError):
        raise ConfigurationError(f"'filter' is not a valid template: {search_filter!r}") from None

    timeout = config.get("timeout", 120)
    try:
        timeout = float(timeout)
    except (TypeError, ValueError):
        raise ConfigurationError(f"'timeout' must be a number, got {timeout!r}") from None
    if timeout <= 0:
        raise ConfigurationError("'timeout' must be positive")

    version = _int(config.get("version", 3), "version")
    if version not in (2, 3):
        raise ConfigurationError(f"'version' must be 2 or 3, got {version}")

    port = _int(config.get("port", 389), "port")
    if not 0 < port < 65536:
        raise ConfigurationError(f"'port' out of range: {port}")

    binddn = config.get("binddn")
    bindpw = config.get("bindpw")
    if bindpw is not None and not binddn:
        raise ConfigurationError("'bindpw' given without 'binddn'")
    if binddn and not bindpw:
        raise ConfigurationError("'binddn' given without 'bindpw'")

    start_tls = _flag(config.get("start_tls", True), "start_tls")
    if start_tls and version == 2:
        raise ConfigurationError("STARTTLS is an LDAPv3 operation; set start_tls off for version 2")

    return DirectoryRealm(
        host=host,
        port=port,
        basedn=str(config.get("basedn") or ""),
        binddn=str(binddn) if binddn else None,
        bindpw=None if bindpw is None else str(bindpw),
        scope=_enum(SearchScope, config.get("scope", "sub"), "scope"),
        filter=search_filter,
        timeout=timeout,
        version=version,
        start_tls=start_tls,
        tls_verify=_enum(TlsVerify, config.get("tls_verify", "optional"), "tls_verify"),
        cafile=config.get("cafile") or None,
        debug=_flag(config.get("debug", False), "debug"),
        return_ldap_handle=_flag(config.get("return_ldap_handle", False), "return_ldap_handle"),
        logging=logging,
    )


def resolve_realm(config: Any) -> Realm:
    """Select the realm variant for a raw configuration value.

    Args:
        config: Mapping (or object with ``as_dict()``), a callable predicate,
            or an already-resolved realm (returned unchanged).

    Returns:
        One of StaticRealm, PasswdFileRealm, DirectoryRealm, CallbackRealm.

    Raises:
        ConfigurationError: No group can be determined or a value is invalid.
    """
    if isinstance(config, _REALM_TYPES):
        return config
    config = _as_dict(config)

    if isinstance(config, dict):
        logging = _flag(config.get("logging", False), "logging")
        username = config.get("username")
        password = config.get("password")
        if username is not None and password is not None:
            return StaticRealm(username=str(username), password=str(password), logging=logging)
        if config.get("path"):
            return PasswdFileRealm(path=str(config["path"]), logging=logging)
        if config.get("host"):
            return _directory_realm(config, logging)
        check = config.get("callback")
        if callable(check):
            return CallbackRealm(check=check, logging=logging)
        if not config:
            raise ConfigurationError("Empty realm configuration")
        keys = ", ".join(sorted(map(str, config)))
        raise ConfigurationError(f"Cannot determine realm backend from keys: {keys}")

    if callable(config):
        return CallbackRealm(check=config)

    raise ConfigurationError(f"Unsupported realm configuration: {type(config).__name__}")
