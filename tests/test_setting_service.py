import pydantic
import pytest

from fitapi.config import Settings
from fitapi.core.exceptions import ConflictError, NotFoundError, ValidationError


class TestSettingService:
    """운영 설정 테스트"""

    def test_default_multiplier(self, setting_service):
        assert setting_service.get_suspicious_multiplier() == 1.5

    def test_update_multiplier(self, setting_service):
        # When
        updated = setting_service.update_setting("suspicious_step_multiplier", "1.8", admin_id="admin-1")

        # Then
        assert updated.value == "1.8"
        assert setting_service.get_suspicious_multiplier() == 1.8

    def test_update_twice_overwrites(self, setting_service):
        setting_service.update_setting("suspicious_step_multiplier", "1.8")
        setting_service.update_setting("suspicious_step_multiplier", "2.5")

        assert setting_service.get_suspicious_multiplier() == 2.5

    @pytest.mark.parametrize("value", ["abc", "1.0", "0.5"])
    def test_invalid_multiplier_rejected(self, setting_service, value):
        with pytest.raises(ValidationError):
            setting_service.update_setting("suspicious_step_multiplier", value)

    def test_unknown_key(self, setting_service):
        with pytest.raises(NotFoundError):
            setting_service.get_setting("unknown")
        with pytest.raises(NotFoundError):
            setting_service.update_setting("unknown", "1")

    def test_locked_setting_cannot_change(self, setting_service, db_session):
        # Given
        setting_service.setting_repo.create(
            key="suspicious_step_multiplier", value="1.5", value_type="float", is_editable=False
        )
        db_session.commit()

        # When
        with pytest.raises(ConflictError):
            setting_service.update_setting("suspicious_step_multiplier", "3.0")

        # Then
        assert setting_service.get_suspicious_multiplier() == 1.5


class TestSettingsMultiplierBound:
    """환경 변수 기본값의 배수 하한 테스트"""

    @pytest.mark.parametrize("value", ["1.0", "0.8"])
    def test_env_multiplier_must_exceed_one(self, monkeypatch, value):
        monkeypatch.setenv("SUSPICIOUS_STEP_MULTIPLIER", value)

        with pytest.raises(pydantic.ValidationError):
            Settings(_env_file=None)

    def test_env_multiplier_above_one_accepted(self, monkeypatch):
        monkeypatch.setenv("SUSPICIOUS_STEP_MULTIPLIER", "2.0")

        assert Settings(_env_file=None).SUSPICIOUS_STEP_MULTIPLIER == 2.0
