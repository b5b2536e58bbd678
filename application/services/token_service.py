"""
Token service - verifies access JWTs issued by the main application
"""
from typing import Optional
from datetime import datetime, timedelta, timezone
import jwt
import uuid

from application.dto import CurrentUserDTO
from core.config import settings
from core.exceptions import TokenExpiredException
from core.logging_config import get_logger


logger = get_logger(__name__)


class TokenService:
    """Shared-secret HS256 access tokens.

    Issuing lives in the main web application; ``create_access_token`` is
    kept for local development and tests.
    """

    def __init__(self, secret_key: Optional[str] = None, algorithm: Optional[str] = None) -> None:
        self._secret_key = secret_key or settings.SECRET_KEY
        self._algorithm = algorithm or settings.ALGORITHM

    def create_access_token(self, user_id: str, name: Optional[str] = None,
                            expires_minutes: Optional[int] = None) -> str:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=expires_minutes if expires_minutes is not None else settings.ACCESS_TOKEN_EXPIRE_MINUTES
        )
        to_encode = {
            "sub": str(user_id),
            "name": name,
            "exp": expire,
            "type": "access",
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(to_encode, self._secret_key, algorithm=self._algorithm)

    def verify_access_token(self, token: str) -> Optional[CurrentUserDTO]:
        """Verify an access JWT.

        - Expired token: raise TokenExpiredException
        - Invalid token or wrong type: return None
        """
        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[self._algorithm])
        except jwt.ExpiredSignatureError:
            raise TokenExpiredException()
        except jwt.InvalidTokenError as exc:
            logger.debug("access_token_invalid", error=str(exc))
            return None

        if payload.get("type") != "access":
            return None
        user_id = payload.get("sub")
        if not user_id:
            return None
        return CurrentUserDTO(id=str(user_id), name=payload.get("name") or str(user_id))
