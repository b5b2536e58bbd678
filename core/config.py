"""
Configuration - project settings management
"""
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import AliasChoices, Field, field_validator, model_validator
from typing import Annotated, List, Optional


OVERFLOW_POLICIES = {"drop_oldest", "drop_new", "disconnect"}


class Settings(BaseSettings):
    """Project settings"""

    # Basics
    PROJECT_NAME: str = Field(
        default="Tanq Realtime",
        validation_alias=AliasChoices("PROJECT_NAME", "APP_NAME"),
    )
    VERSION: str = Field(default="1.0.0", validation_alias=AliasChoices("VERSION", "APP_VERSION"))
    DEBUG: bool = True
    ENVIRONMENT: str = "development"

    # Logging
    LOG_LEVEL: Optional[str] = None  # defaults to DEBUG/INFO following DEBUG
    LOG_JSON: Optional[bool] = None  # defaults to JSON unless DEBUG

    # Security (token verification only; issuing happens elsewhere)
    SECRET_KEY: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("SECRET_KEY", "JWT_SECRET_KEY"),
        description="JWT signing key, mandatory in every environment",
    )
    ALGORITHM: str = Field(default="HS256", validation_alias=AliasChoices("ALGORITHM", "JWT_ALGORITHM"))
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    AUTH_COOKIE_NAME: str = "tanq_token"

    # CORS
    CORS_ORIGINS: Annotated[List[str], NoDecode] = Field(default=["http://localhost:3000", "http://localhost:8000"])

    # Request logging
    LOG_SKIP_PATHS: Annotated[List[str], NoDecode] = Field(
        default=["/health", "/docs", "/redoc", "/openapi.json", "/api/realtime/notifications"]
    )

    # Realtime / SSE
    REALTIME_SSE_HEARTBEAT_INTERVAL_S: float = 30.0
    REALTIME_SSE_QUEUE_MAX: int = 100
    REALTIME_SSE_OVERFLOW_POLICY: str = Field(
        default="drop_oldest",
        description="Stream queue overflow policy: drop_oldest | drop_new | disconnect",
    )

    # Realtime / voice signaling
    REALTIME_VOICE_ROOM_PARAM: str = "room"
    REALTIME_VOICE_MAX_FRAME_BYTES: int = 64 * 1024

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def _validate_secret_key(self):
        # Require an explicit key everywhere so reloads never invalidate sessions
        if not self.SECRET_KEY:
            raise ValueError(
                "SECRET_KEY is not configured. Set SECRET_KEY (or JWT_SECRET_KEY) in the environment or .env"
            )
        return self

    @field_validator("REALTIME_SSE_OVERFLOW_POLICY", mode="before")
    @classmethod
    def _normalize_overflow_policy(cls, v):
        policy = str(v or "drop_oldest").strip().lower()
        if policy not in OVERFLOW_POLICIES:
            raise ValueError(f"REALTIME_SSE_OVERFLOW_POLICY must be one of {sorted(OVERFLOW_POLICIES)}")
        return policy

    @field_validator("CORS_ORIGINS", "LOG_SKIP_PATHS", mode="before")
    @classmethod
    def _parse_str_list(cls, v):
        """Accept a JSON array or a comma separated string."""
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            s = v.strip()
            if s.startswith("[") and s.endswith("]"):
                import json
                try:
                    arr = json.loads(s)
                    if isinstance(arr, list):
                        return arr
                except ValueError:
                    pass
            if "," in s:
                return [item.strip() for item in s.split(",") if item.strip()]
            return [s]
        return v


settings = Settings()
