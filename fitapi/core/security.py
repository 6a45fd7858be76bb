from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt, JWTError
from pydantic import ValidationError

from fitapi.config import settings
from fitapi.core.exceptions import AuthenticationError
from fitapi.schemas.auth import TokenPayload


def create_access_token(
    subject: str, is_admin: bool = False, expires_delta: Optional[timedelta] = None
) -> str:
    """액세스 토큰 발급 (운영에서는 외부 인증 서비스가 발급, 로컬/테스트용)"""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=60))
    to_encode = {"sub": subject, "is_admin": is_admin, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> TokenPayload:
    """JWT 토큰을 검증하고 페이로드를 반환합니다."""
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
        return TokenPayload.model_validate(payload)
    except (JWTError, ValidationError):
        raise AuthenticationError("Invalid or expired token")
