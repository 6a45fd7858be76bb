from pydantic import BaseModel, Field
from typing import Optional


class SettingResponse(BaseModel):
    key: str
    value: str
    value_type: str
    description: Optional[str] = None
    is_editable: bool = True

    class Config:
        from_attributes = True


class SettingUpdateRequest(BaseModel):
    value: str = Field(..., min_length=1, max_length=255, description="새 값")
