from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from fitapi.core.exceptions import AuthenticationError, AuthorizationError
from fitapi.core.security import decode_access_token
from fitapi.schemas.auth import CurrentUser

# 토큰이 없을 때도 401 본문 형식을 맞추기 위해 auto_error 를 끔
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CurrentUser:
    """Bearer 토큰의 sub 를 현재 사용자로 사용 (토큰 발급은 인증 서비스 담당)"""
    if credentials is None:
        raise AuthenticationError("Authentication required")

    payload = decode_access_token(credentials.credentials)
    return CurrentUser(id=payload.sub, is_admin=payload.is_admin)


def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not current_user.is_admin:
        raise AuthorizationError("Admin access required")
    return current_user
