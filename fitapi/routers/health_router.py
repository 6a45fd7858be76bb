import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from fitapi.config import settings
from fitapi.database.session import get_db
from fitapi.schemas.health import HealthCheckResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthCheckResponse)
def health_check(db: Session = Depends(get_db)) -> HealthCheckResponse:
    """DB 연결 확인 (로드밸런서/Lambda 워밍용, 인증 없음)"""
    response = HealthCheckResponse(
        version=settings.VERSION,
        environment=settings.ENVIRONMENT,
        checked_at=datetime.now(timezone.utc),
    )
    try:
        db.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check database probe failed: {e}")
        response.status = "degraded"
        response.database_connected = False
        response.error = str(e)
    return response
