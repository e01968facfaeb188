# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Data structures wrapping raw request data.

Exports:
    Headers: Case-insensitive, read-only header collection.
    headers_from_scope: Build Headers from an ASGI scope.
"""

from .headers import Headers, headers_from_scope

__all__ = ["Headers", "headers_from_scope"]
