"""
Request ID middleware
Generates or propagates a trace id and exposes it to logging via contextvars
"""
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.datastructures import Headers, MutableHeaders
from starlette.types import ASGIApp, Message, Receive, Scope, Send

import structlog


request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
client_ip_var: ContextVar[Optional[str]] = ContextVar("client_ip", default=None)


class RequestIDMiddleware:
    """
    Request ID tracing middleware

    1. Reuse the incoming X-Request-ID header or generate a new id
    2. Store it in contextvars and bind it into the structlog context
    3. Echo it back on HTTP responses

    Plain ASGI so WebSocket sessions are tagged as well and streaming
    responses are never buffered.
    """

    HEADER_NAME = "X-Request-ID"

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        request_id = headers.get(self.HEADER_NAME) or str(uuid.uuid4())
        client_ip = _client_ip(scope, headers)

        scope.setdefault("state", {})
        scope["state"]["request_id"] = request_id
        scope["state"]["client_ip"] = client_ip

        request_id_var.set(request_id)
        client_ip_var.set(client_ip)
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            client_ip=client_ip,
            path=scope.get("path"),
        )

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message)[self.HEADER_NAME] = request_id
            await send(message)

        await self.app(scope, receive, send_wrapper)


def _client_ip(scope: Scope, headers: Headers) -> str:
    """Client address, honouring proxy headers"""
    forwarded = headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = headers.get("X-Real-IP")
    if real_ip:
        return real_ip
    client = scope.get("client")
    return client[0] if client else "unknown"


def get_request_id() -> Optional[str]:
    """Request id of the current request, or None outside a request"""
    return request_id_var.get()


def get_client_ip() -> Optional[str]:
    """Client IP of the current request, or None outside a request"""
    return client_ip_var.get()
