from typing import Any, Optional
from sqlalchemy.orm import Session

from fitapi.config import Settings
from fitapi.repositories.setting_repository import SettingRepository
from fitapi.core.exceptions import ConflictError, NotFoundError, ValidationError
from fitapi.schemas.settings import SettingResponse
import logging

logger = logging.getLogger(__name__)

SUSPICIOUS_STEP_MULTIPLIER_KEY = "suspicious_step_multiplier"

# 관리자가 조정할 수 있는 설정 목록: key -> (value_type, 설명)
EDITABLE_SETTINGS = {
    SUSPICIOUS_STEP_MULTIPLIER_KEY: (
        "float",
        "Manual step submissions above this multiple of the personal average are flagged",
    ),
}


class SettingService:
    """운영 설정 조회/변경 서비스"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.setting_repo = SettingRepository(db)

    def _defaults(self) -> dict:
        return {
            SUSPICIOUS_STEP_MULTIPLIER_KEY: str(self.settings.SUSPICIOUS_STEP_MULTIPLIER),
        }

    @staticmethod
    def _cast(value: str, value_type: str) -> Any:
        if value_type == "integer":
            return int(value)
        if value_type == "float":
            return float(value)
        if value_type == "boolean":
            return value.strip().lower() in ("1", "true", "yes", "on")
        return value

    def get_setting(self, key: str) -> SettingResponse:
        """설정 조회 (저장된 값이 없으면 기본값)"""
        if key not in EDITABLE_SETTINGS:
            raise NotFoundError(f"Setting not found: {key}")

        stored = self.setting_repo.get_setting(key)
        if stored:
            return stored

        value_type, description = EDITABLE_SETTINGS[key]
        return SettingResponse(
            key=key,
            value=self._defaults()[key],
            value_type=value_type,
            description=description,
        )

    def get_value(self, key: str) -> Any:
        setting = self.get_setting(key)
        return self._cast(setting.value, setting.value_type)

    def get_suspicious_multiplier(self) -> float:
        return float(self.get_value(SUSPICIOUS_STEP_MULTIPLIER_KEY))

    def update_setting(self, key: str, value: str, admin_id: Optional[str] = None) -> SettingResponse:
        """설정 변경 (관리자용)

        Args:
            key: 설정 키
            value: 새 값 (문자열, 타입에 맞게 검증)
            admin_id: 변경한 관리자 ID (로그용)

        Returns:
            SettingResponse: 변경된 설정
        """
        if key not in EDITABLE_SETTINGS:
            raise NotFoundError(f"Setting not found: {key}")

        stored = self.setting_repo.get_setting(key)
        if stored and not stored.is_editable:
            logger.warning(f"Attempt to modify locked setting {key} by admin {admin_id}")
            raise ConflictError(f"Setting {key} is not editable", details={"key": key})

        value_type, description = EDITABLE_SETTINGS[key]
        try:
            parsed = self._cast(value, value_type)
        except ValueError:
            raise ValidationError(
                f"Invalid value for {key}: expected {value_type}",
                details={"field": "value", "value": value},
            )

        if key == SUSPICIOUS_STEP_MULTIPLIER_KEY and parsed <= 1.0:
            raise ValidationError(
                "Suspicious multiplier must be greater than 1.0",
                details={"field": "value", "value": value},
            )

        try:
            updated = self.setting_repo.upsert(
                key=key, value=value, value_type=value_type, description=description
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Setting {key} updated to {value} by admin {admin_id}")
        return updated
