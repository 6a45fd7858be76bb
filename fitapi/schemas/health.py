from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel


class HealthCheckResponse(BaseModel):
    status: Literal["healthy", "degraded"] = "healthy"
    version: str
    environment: str
    database_connected: bool = True
    checked_at: datetime
    error: Optional[str] = None
