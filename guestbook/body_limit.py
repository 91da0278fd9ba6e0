"""Request body size limit for the guestbook API.

Bodies are buffered up to the limit and then replayed to the downstream app,
so chunked uploads without a Content-Length are capped as well.
"""

from __future__ import annotations

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

BODY_METHODS = {"POST", "PUT", "PATCH"}


class BodyTooLarge(Exception):
    pass


class BodySizeLimitMiddleware:
    """Pure ASGI middleware answering 413 for request bodies above ``max_bytes``."""

    def __init__(self, app: ASGIApp, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope.get("method", "GET") not in BODY_METHODS:
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        declared = request.headers.get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > self.max_bytes:
            await self._reject(scope, receive, send)
            return

        try:
            body_bytes = await self._read_body(receive)
        except BodyTooLarge:
            await self._reject(scope, receive, send)
            return

        sent = False

        async def cached_receive() -> Message:
            nonlocal sent
            if sent:
                return await receive()
            sent = True
            return {"type": "http.request", "body": body_bytes, "more_body": False}

        await self.app(scope, cached_receive, send)

    async def _read_body(self, receive: Receive) -> bytes:
        body_parts: list[bytes] = []
        size = 0
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                break
            chunk = message.get("body", b"")
            size += len(chunk)
            if size > self.max_bytes:
                raise BodyTooLarge()
            body_parts.append(chunk)
            if not message.get("more_body", False):
                break
        return b"".join(body_parts)

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        response = JSONResponse(
            {"ok": False, "error": "Request body too large"},
            status_code=413,
        )
        await response(scope, receive, send)
