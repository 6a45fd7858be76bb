from typing import Optional

from sqlalchemy.orm import Session

from fitapi.models.setting import Setting as SettingModel
from fitapi.repositories.base import BaseRepository
from fitapi.schemas.settings import SettingResponse


class SettingRepository(BaseRepository[SettingModel, SettingResponse]):
    """운영 설정 리포지토리 (key/value)"""

    def __init__(self, db: Session):
        super().__init__(SettingModel, SettingResponse, db)

    def get_setting(self, key: str) -> Optional[SettingResponse]:
        return self.get_by_field("key", key)

    def upsert(
        self,
        key: str,
        value: str,
        value_type: str = "string",
        description: Optional[str] = None,
    ) -> SettingResponse:
        updated_count = (
            self.db.query(SettingModel)
            .filter(SettingModel.key == key)
            .update({"value": value}, synchronize_session=False)
        )
        self.db.flush()
        if updated_count == 0:
            return self.create(
                key=key, value=value, value_type=value_type, description=description
            )
        return self.get_setting(key)
