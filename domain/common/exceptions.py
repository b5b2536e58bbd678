"""Business exceptions raised by the domain and application layers.

The core layer only maps them to HTTP responses; the domain never imports
from core.
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """Base business exception."""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )


class ConversationNotFoundException(BusinessException):
    def __init__(self, conversation_id: Optional[str] = None):
        details = {"conversation_id": conversation_id} if conversation_id else None
        super().__init__(
            code=BusinessCode.CONVERSATION_NOT_FOUND,
            message="Conversation not found",
            error_type="ConversationNotFound",
            details=details,
        )


class ConversationAccessDeniedException(BusinessException):
    def __init__(self, conversation_id: str):
        super().__init__(
            code=BusinessCode.FORBIDDEN,
            message="Not a participant of this conversation",
            error_type="ConversationAccessDenied",
            details={"conversation_id": conversation_id},
        )


class BadgeAlreadyAwardedException(BusinessException):
    """Raised by badge repositories when the (user, badge) pair already exists."""

    def __init__(self, user_id: str, code: str):
        super().__init__(
            code=BusinessCode.DUPLICATE_AWARD,
            message="Badge already awarded",
            error_type="BadgeAlreadyAwarded",
            details={"user_id": user_id, "badge": code},
        )


class SelfConversationException(BusinessException):
    def __init__(self):
        super().__init__(
            code=BusinessCode.BUSINESS_ERROR,
            message="Cannot start a conversation with yourself",
            error_type="SelfConversation",
            field="participant_id",
        )
