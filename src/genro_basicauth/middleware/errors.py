# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Plain-text error responses for the basicauth stack.

Sits outermost (order 100, on by default) and turns exceptions from the
layers below into HTTP answers:

    HTTPException   its status, detail and headers; HTTPUnauthorized carries
                    ``WWW-Authenticate: Basic realm="..."`` this way
    AuthError       fatal authentication error (misconfigured realm,
                    faulting callback): logged, answered with 500
    Exception       logged with traceback, answered with 500

Once the application has sent ``http.response.start`` nothing can be
rendered any more; the exception is logged and re-raised to the server.

Config:
    debug: Append the traceback to 500 bodies. Default False.
"""

from __future__ import annotations

import logging
import traceback
from typing import TYPE_CHECKING, Any

from . import BaseMiddleware
from ..exceptions import AuthError, HTTPException

if TYPE_CHECKING:
    from ..types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger("genro_basicauth.errors")


async def send_text(
    send: Send, status: int, text: str, headers: list[tuple[str, str]] | None = None
) -> None:
    """Send a complete ``text/plain`` response."""
    body = text.encode("utf-8")
    raw_headers = [
        (b"content-type", b"text/plain; charset=utf-8"),
        (b"content-length", str(len(body)).encode("latin-1")),
    ]
    for name, value in headers or ():
        raw_headers.append((name.lower().encode("latin-1"), value.encode("latin-1")))
    await send({"type": "http.response.start", "status": status, "headers": raw_headers})
    await send({"type": "http.response.body", "body": body})


class ErrorMiddleware(BaseMiddleware):
    """Render exceptions from inner layers as HTTP responses.

    Attributes:
        debug: Include tracebacks in 500 bodies.
    """

    middleware_name = "errors"
    middleware_order = 100
    middleware_default = True

    __slots__ = ("debug",)

    def __init__(self, app: ASGIApp, debug: bool = False, **kwargs: Any) -> None:
        super().__init__(app, **kwargs)
        self.debug = debug

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        started = False

        async def tracking_send(message: Message) -> None:
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        path = scope.get("path", "/")
        try:
            await self.app(scope, receive, tracking_send)
        except HTTPException as e:
            if started:
                raise
            await send_text(send, e.status_code, e.detail or "", e.headers)
        except AuthError as e:
            logger.error(f"{e.error_kind} on {path}: {e}")
            if started:
                raise
            await send_text(send, 500, self._server_error_body())
        except Exception:
            logger.exception(f"Unhandled error on {path}")
            if started:
                raise
            await send_text(send, 500, self._server_error_body())

    def _server_error_body(self) -> str:
        if not self.debug:
            return "Internal Server Error"
        return f"Internal Server Error\n\n{traceback.format_exc()}"
