"""
FastAPI application entry point
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from api.routes import badges as badge_routes
from api.routes import chat as chat_routes
from api.routes import realtime as realtime_routes
from api.middleware import RequestIDMiddleware, LoggingMiddleware
from application.services.badge_service import BadgeService
from application.services.chat_service import DirectMessageService
from core.config import settings
from core.exceptions import register_exception_handlers
from core.response import success_response
from core.logging_config import get_logger, configure_logging
from infrastructure.realtime.notification_registry import NotificationRegistry
from infrastructure.realtime.voice_hub import VoiceSignalingHub
from infrastructure.repositories.badge_repository import InMemoryActivityStats, InMemoryBadgeRepository
from infrastructure.repositories.chat_repository import InMemoryConversationRepository


# Configure logging explicitly at the entry point, not as an import side effect
configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle"""
    registry = NotificationRegistry()
    hub = VoiceSignalingHub(max_frame_bytes=settings.REALTIME_VOICE_MAX_FRAME_BYTES)
    conversations = InMemoryConversationRepository()
    badges = InMemoryBadgeRepository()
    stats = InMemoryActivityStats()

    app.state.notification_registry = registry
    app.state.voice_hub = hub
    app.state.conversation_repository = conversations
    app.state.badge_repository = badges
    app.state.activity_stats = stats
    app.state.direct_message_service = DirectMessageService(conversations=conversations, publisher=registry)
    app.state.badge_service = BadgeService(badges=badges, stats=stats, publisher=registry)
    logger.info(
        "realtime_initialized",
        heartbeat_interval=settings.REALTIME_SSE_HEARTBEAT_INTERVAL_S,
        overflow_policy=settings.REALTIME_SSE_OVERFLOW_POLICY,
    )

    yield

    logger.info(
        "application_shutdown",
        open_rooms=len(hub.room_ids()),
        notification_users=len(registry.user_ids()),
    )


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
    description="Realtime voice signaling and notification streams",
)

# Middleware order: last added runs first
# 1. Request ID (gives later middleware a request_id)
app.add_middleware(RequestIDMiddleware)

# 2. Request logging (reads request_id)
app.add_middleware(LoggingMiddleware)

# 3. CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global exception handlers
register_exception_handlers(app)


# Routers
app.include_router(realtime_routes.router, prefix="/api")
app.include_router(chat_routes.router, prefix="/api/v1")
app.include_router(badge_routes.router, prefix="/api/v1")


@app.get("/", tags=["Root"])
async def root():
    """API root"""
    return success_response(
        data={
            "name": settings.PROJECT_NAME,
            "version": settings.VERSION,
            "docs": "/docs",
            "redoc": "/redoc"
        },
        message="Welcome"
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check"""
    return success_response(data={"status": "healthy"}, message="OK")


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info"
    )
