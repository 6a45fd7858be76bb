from pydantic import BaseModel, Field
from typing import Optional


class TokenPayload(BaseModel):
    """인증 서비스가 발급한 JWT 의 클레임"""

    sub: str = Field(..., min_length=1, description="사용자 ID")
    is_admin: bool = False
    exp: Optional[int] = None


class CurrentUser(BaseModel):
    id: str
    is_admin: bool = False
