"""
Request logging middleware
Logs request start, completion (status and duration) and failures
"""
import time
from typing import Iterable, Optional
from urllib.parse import parse_qsl

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from core.logging_config import get_logger
from core.config import settings


logger = get_logger(__name__)


class LoggingMiddleware:
    """
    Request logging middleware

    - HTTP: `request_started`, then `request_completed` /
      `request_client_error` / `request_server_error` when the response
      starts, or `request_failed` on an exception.
    - WebSocket: `ws_session_started` / `ws_session_ended` with duration.

    Paths in LOG_SKIP_PATHS (health, docs, the SSE stream) are not logged.
    """

    # masked in logged query params
    SENSITIVE_FIELDS = {"password", "token", "secret", "api_key", "access_token", "refresh_token"}

    def __init__(self, app: ASGIApp, skip_paths: Optional[Iterable[str]] = None):
        self.app = app
        self.skip_paths = set(skip_paths if skip_paths is not None else settings.LOG_SKIP_PATHS)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket") or scope.get("path") in self.skip_paths:
            await self.app(scope, receive, send)
            return

        start_time = time.time()
        info = self._request_info(scope)

        if scope["type"] == "websocket":
            logger.info("ws_session_started", **info)
            try:
                await self.app(scope, receive, send)
            finally:
                logger.info("ws_session_ended", duration=time.time() - start_time, **info)
            return

        logger.info("request_started", **info)

        async def send_wrapper(message: Message) -> None:
            if message["type"] == "http.response.start":
                self._log_response(message["status"], time.time() - start_time, info)
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            logger.error(
                "request_failed",
                duration=time.time() - start_time,
                error=str(exc),
                error_type=type(exc).__name__,
                **info,
                exc_info=True
            )
            raise

    @staticmethod
    def _request_info(scope: Scope) -> dict:
        headers = Headers(scope=scope)
        info = {
            "method": scope.get("method", "WS"),
            "path": scope.get("path"),
        }
        query = scope.get("query_string", b"")
        if query:
            info["query_params"] = {
                k: ("***" if k.lower() in LoggingMiddleware.SENSITIVE_FIELDS else v)
                for k, v in parse_qsl(query.decode("latin-1"), keep_blank_values=True)
            }
        user_agent = headers.get("user-agent")
        if user_agent:
            info["user_agent"] = user_agent
        return info

    @staticmethod
    def _log_response(status_code: int, duration: float, info: dict) -> None:
        log_data = {"status_code": status_code, "duration": duration, **info}
        if status_code < 400:
            logger.info("request_completed", **log_data)
        elif status_code < 500:
            logger.warning("request_client_error", **log_data)
        else:
            logger.error("request_server_error", **log_data)
