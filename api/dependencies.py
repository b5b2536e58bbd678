"""
API dependencies - authentication and access to the process-wide services
"""
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from starlette.requests import HTTPConnection
from typing import Optional

from application.dto import CurrentUserDTO
from application.services.badge_service import BadgeService
from application.services.chat_service import DirectMessageService
from application.services.token_service import TokenService
from core.config import settings
from core.exceptions import UnauthorizedException
from infrastructure.realtime.notification_registry import NotificationRegistry
from infrastructure.realtime.voice_hub import VoiceSignalingHub


# HTTP Bearer for direct API calls; cookie and query fallbacks below
http_bearer = HTTPBearer(
    scheme_name="Bearer",
    description="JWT Bearer token authentication",
    auto_error=False,
)


def extract_token(conn: HTTPConnection,
                  bearer: Optional[HTTPAuthorizationCredentials] = None) -> Optional[str]:
    """Bearer header first, then the session cookie, then `?token=`.

    EventSource and browser WebSockets cannot set headers, hence the
    cookie and query fallbacks.
    """
    if bearer and bearer.credentials:
        return bearer.credentials
    auth = conn.headers.get("authorization") or ""
    if auth.lower().startswith("bearer "):
        return auth[7:].strip() or None
    cookie = conn.cookies.get(settings.AUTH_COOKIE_NAME)
    if cookie:
        return cookie
    return conn.query_params.get("token") or None


def _app_state_service(conn: HTTPConnection, name: str):
    svc = getattr(conn.app.state, name, None)
    if svc is None:
        raise RuntimeError(f"{name} not initialized. Ensure lifespan sets app.state.{name}.")
    return svc


async def get_token_service() -> TokenService:
    return TokenService()


async def get_current_user(
    conn: HTTPConnection,
    bearer: Optional[HTTPAuthorizationCredentials] = Depends(http_bearer),
    token_service: TokenService = Depends(get_token_service),
) -> CurrentUserDTO:
    """Resolve the caller or fail with 401"""
    token = extract_token(conn, bearer)
    if not token:
        raise UnauthorizedException("Missing credentials")
    user = token_service.verify_access_token(token)
    if user is None:
        raise UnauthorizedException("Invalid credentials")
    return user


def get_notification_registry(conn: HTTPConnection) -> NotificationRegistry:
    return _app_state_service(conn, "notification_registry")


def get_voice_hub(conn: HTTPConnection) -> VoiceSignalingHub:
    return _app_state_service(conn, "voice_hub")


def get_direct_message_service(conn: HTTPConnection) -> DirectMessageService:
    return _app_state_service(conn, "direct_message_service")


def get_badge_service(conn: HTTPConnection) -> BadgeService:
    return _app_state_service(conn, "badge_service")
