# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Single configured username/password."""

from __future__ import annotations

import hmac
from typing import TYPE_CHECKING

from ..exceptions import CredentialFormatError
from ..hashes import DEFAULT_REGISTRY, HashRegistry
from .base import AuthBackend, Verdict

if TYPE_CHECKING:
    from ..credentials import Credentials
    from ..realms import StaticRealm

__all__ = ["StaticBackend"]


class StaticBackend(AuthBackend):
    """Compare against ``StaticRealm.username`` / ``StaticRealm.password``.

    The username must match exactly (case-sensitive). The configured password
    may be plaintext or any format known to the hash registry.
    """

    realm_kind = "static"

    __slots__ = ("hashes",)

    def __init__(self, hashes: HashRegistry | None = None) -> None:
        self.hashes = hashes or DEFAULT_REGISTRY

    def verify(self, realm: StaticRealm, credentials: Credentials) -> Verdict:
        if not hmac.compare_digest(
            credentials.username.encode("utf-8"), realm.username.encode("utf-8")
        ):
            return Verdict.failed()
        try:
            return Verdict(authenticated=self.hashes.check(credentials.password, realm.password))
        except CredentialFormatError as e:
            return Verdict.failed(e)
