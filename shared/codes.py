"""
Shared business codes used across layers (Domain/Core/API).

Single source of truth for the codes carried in the unified response
envelope, so the exception handlers and the domain never drift apart.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    """Business status codes."""

    SUCCESS = 0

    # Parameter errors (1xxxx)
    PARAM_ERROR = 10000
    PARAM_MISSING = 10001
    PARAM_VALIDATION_ERROR = 10003

    # Business errors (2xxxx)
    BUSINESS_ERROR = 20000
    TOKEN_INVALID = 20004
    TOKEN_EXPIRED = 20005
    NOT_FOUND = 20006
    CONVERSATION_NOT_FOUND = 20101
    DUPLICATE_AWARD = 20201

    # Permission errors (3xxxx)
    PERMISSION_ERROR = 30000
    UNAUTHORIZED = 30001
    FORBIDDEN = 30002

    # System errors (4xxxx)
    SYSTEM_ERROR = 40000
    SERVICE_UNAVAILABLE = 40003


__all__ = ["BusinessCode"]
