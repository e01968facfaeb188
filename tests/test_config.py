# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Tests for TOML realm and route loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from genro_basicauth.config import find_config_file, load_config, load_realms, load_routes
from genro_basicauth.exceptions import ConfigurationError
from genro_basicauth.realms import DirectoryRealm, PasswdFileRealm, StaticRealm, TlsVerify

CONFIG = """
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
bindpw = "${TEST_LDAP_BINDPW}"
tls_verify = "require"

[realms.Fallback]
username = "admin"
password = "${TEST_ADMIN_PASSWORD:-changeme}"
"""


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "genro-basicauth.toml"
    path.write_text(CONFIG)
    return path


class TestLoadConfig:
    def test_env_expansion(self, config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TEST_LDAP_BINDPW", "readerpw")
        monkeypatch.delenv("TEST_ADMIN_PASSWORD", raising=False)
        config = load_config(config_file)
        assert config["realms"]["Operators"]["bindpw"] == "readerpw"
        assert config["realms"]["Fallback"]["password"] == "changeme"

    def test_required_env_missing(
        self, config_file: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("TEST_LDAP_BINDPW", raising=False)
        with pytest.raises(ConfigurationError, match="TEST_LDAP_BINDPW"):
            load_config(config_file)

    def test_empty_default_and_nested(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("TEST_UNSET_VALUE", raising=False)
        monkeypatch.setenv("TEST_HOST", "ldap.internal")
        path = tmp_path / "c.toml"
        path.write_text(
            'hosts = ["${TEST_HOST}", "backup"]\n'
            'suffix = "x${TEST_UNSET_VALUE:-}y"\n'
            "port = 389\n"
        )
        config = load_config(path)
        assert config == {"hosts": ["ldap.internal", "backup"], "suffix": "xy", "port": 389}

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "absent.toml")

    def test_invalid_toml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.toml"
        path.write_text("[realms\n")
        with pytest.raises(ConfigurationError, match="parse"):
            load_config(path)


class TestLoadRealms:
    def test_resolved(self, config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TEST_LDAP_BINDPW", "readerpw")
        monkeypatch.setenv("TEST_ADMIN_PASSWORD", "s3cret")
        realms = load_realms(config_file)

        assert realms["Admin area"] == PasswdFileRealm(path="/etc/app/passwd", logging=True)
        operators = realms["Operators"]
        assert isinstance(operators, DirectoryRealm)
        assert operators.bindpw == "readerpw"
        assert operators.tls_verify is TlsVerify.REQUIRE
        assert realms["Fallback"] == StaticRealm(username="admin", password="s3cret")

    def test_invalid_realm_named(self, tmp_path: Path) -> None:
        path = tmp_path / "c.toml"
        path.write_text('[realms.Broken]\nhost = "h"\nfilter = "(uid=alice)"\n')
        with pytest.raises(ConfigurationError, match="Realm 'Broken'"):
            load_realms(path)

    def test_realm_must_be_table(self, tmp_path: Path) -> None:
        path = tmp_path / "c.toml"
        path.write_text('[realms]\nBroken = "nope"\n')
        with pytest.raises(ConfigurationError, match="table"):
            load_realms(path)

    def test_no_realms(self, tmp_path: Path) -> None:
        path = tmp_path / "c.toml"
        path.write_text("")
        assert load_realms(path) == {}


class TestLoadRoutes:
    def test_routes(self, config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TEST_LDAP_BINDPW", "x")
        assert load_routes(config_file) == {"/admin": "Admin area", "/ops": "Operators"}

    def test_non_string_realm(self, tmp_path: Path) -> None:
        path = tmp_path / "c.toml"
        path.write_text('[routes]\n"/admin" = 3\n')
        with pytest.raises(ConfigurationError, match="/admin"):
            load_routes(path)


class TestFindConfigFile:
    def test_env_var(self, config_file: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("GENRO_BASICAUTH_CONFIG", str(config_file))
        assert find_config_file() == config_file

    def test_cwd(
        self, config_file: Path, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("GENRO_BASICAUTH_CONFIG", raising=False)
        monkeypatch.chdir(tmp_path)
        assert find_config_file() == tmp_path / "genro-basicauth.toml"
