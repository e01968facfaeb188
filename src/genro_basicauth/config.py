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

"""
TOML configuration for realms and protected routes.

Realms are declared as ``[realms.<name>]`` tables, one per realm, with the
same keys ``resolve_realm()`` accepts. Routes map a path prefix to a realm
name. Values may reference environment variables:

- ``${VAR}`` - required, ConfigurationError if not set
- ``${VAR:-default}`` - with default value

Example::

    [routes]
    "/admin" = "Admin area"
    "/ops" = "Operators"

    [realms."Admin area"]
    path = "/etc/app/passwd"
    logging = true

    [realms.Operators]
    host = "ldap.example.com"
    basedn = "ou=people,dc=example,dc=com"
    binddn = "cn=reader,dc=example,dc=com"
    bindpw = "${LDAP_BINDPW}"
    tls_verify = "require"

Callback realms cannot be expressed in TOML; register them in code.
"""

from __future__ import annotations

import os
import re
import sys
from pathlib import Path
from typing import Any

from .exceptions import ConfigurationError
from .realms import Realm, resolve_realm

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

__all__ = ["load_config", "find_config_file", "load_realms", "load_routes"]

_ENV_PATTERN = re.compile(r"\$\{(?P<name>[^}:]+)(?::-(?P<default>[^}]*))?\}")


def load_config(path: str | Path) -> dict[str, Any]:
    """
    Parse a TOML file and expand environment references in its strings.

    Raises:
        ConfigurationError: Missing or malformed file, or a ``${VAR}``
            without default whose variable is unset.
    """
    source = Path(path)
    if not source.is_file():
        raise ConfigurationError(f"Configuration file not found: {source}")

    try:
        parsed = tomllib.loads(source.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Failed to parse TOML {source}: {e}") from e

    return _expand_env_vars(parsed)


def load_realms(path: str | Path) -> dict[str, Realm]:
    """
    Load and resolve every ``[realms.<name>]`` table of a TOML file.

    Returns:
        Realm name to resolved realm.

    Raises:
        ConfigurationError: Unreadable file or invalid realm. The message
            names the offending realm.
    """
    tables = load_config(path).get("realms", {})
    if not isinstance(tables, dict):
        raise ConfigurationError("'realms' must be a table of realm tables")

    realms: dict[str, Realm] = {}
    for name, table in tables.items():
        if not isinstance(table, dict):
            raise ConfigurationError(f"Realm '{name}' must be a table")
        try:
            realms[name] = resolve_realm(table)
        except ConfigurationError as e:
            raise ConfigurationError(f"Realm '{name}': {e}") from e
    return realms


def load_routes(path: str | Path) -> dict[str, str]:
    """
    Load the ``[routes]`` table: path prefix to realm name.

    Raises:
        ConfigurationError: Unreadable file or a non-string realm name.
    """
    routes = load_config(path).get("routes", {})
    if not isinstance(routes, dict):
        raise ConfigurationError("'routes' must be a table")
    for prefix, realm_name in routes.items():
        if not isinstance(realm_name, str):
            raise ConfigurationError(f"Route '{prefix}' must name a realm")
    return dict(routes)


def _expand_env_vars(node: Any) -> Any:
    """Expand ``${...}`` references in every string of a parsed TOML tree."""
    if isinstance(node, str):
        return _ENV_PATTERN.sub(_env_value, node)
    if isinstance(node, dict):
        return {key: _expand_env_vars(value) for key, value in node.items()}
    if isinstance(node, list):
        return [_expand_env_vars(value) for value in node]
    return node


def _env_value(match: re.Match[str]) -> str:
    name, default = match.group("name"), match.group("default")
    value = os.environ.get(name, default)
    if value is None:
        raise ConfigurationError(f"Required environment variable not set: {name}")
    return value


def _candidate_files() -> list[Path]:
    candidates = []
    explicit = os.environ.get("GENRO_BASICAUTH_CONFIG")
    if explicit:
        candidates.append(Path(explicit))
    cwd = Path.cwd()
    candidates += [
        cwd / "genro-basicauth.toml",
        cwd / "config" / "genro-basicauth.toml",
        Path.home() / ".config" / "genro-basicauth" / "config.toml",
    ]
    return candidates


def find_config_file() -> Path | None:
    """
    First existing configuration file, in this order:
    ``$GENRO_BASICAUTH_CONFIG``, ``./genro-basicauth.toml``,
    ``./config/genro-basicauth.toml``, ``~/.config/genro-basicauth/config.toml``.
    """
    return next((path for path in _candidate_files() if path.exists()), None)
