import pytest
from unittest.mock import Mock

from fitapi.config import Settings
from fitapi.core.exceptions import ValidationError
from fitapi.models.steps import StepSourceEnum
from fitapi.schemas.steps import StepSubmission
from fitapi.services.step_validator import StepValidator


@pytest.fixture
def step_repo():
    repo = Mock()
    repo.get_average_daily_steps.return_value = 0.0
    return repo


@pytest.fixture
def validator(step_repo):
    return StepValidator(step_repo, Settings(_env_file=None))


class TestStepRangeAndStride:
    """범위/보폭 검증 테스트"""

    @pytest.mark.parametrize("distance", [500.0, 2000.0, 1200.0])
    def test_stride_boundaries_accepted(self, validator, distance):
        """보폭 0.5m, 2.0m 경계값은 허용"""
        submission = StepSubmission(steps=1000, distance=distance, source=StepSourceEnum.DEVICE)

        result = validator.validate("user-1", submission, multiplier=1.5)

        assert result.accepted is True

    @pytest.mark.parametrize("distance", [499.99, 2000.01])
    def test_stride_outside_range_rejected(self, validator, distance):
        submission = StepSubmission(steps=1000, distance=distance, source=StepSourceEnum.DEVICE)

        with pytest.raises(ValidationError):
            validator.validate("user-1", submission, multiplier=1.5)

    @pytest.mark.parametrize("steps", [-1, 100001])
    def test_steps_out_of_range(self, validator, steps):
        with pytest.raises(ValidationError):
            validator.validate("user-1", StepSubmission(steps=steps), multiplier=1.5)

    def test_zero_steps_with_distance_rejected(self, validator):
        with pytest.raises(ValidationError):
            validator.validate(
                "user-1", StepSubmission(steps=0, distance=10.0), multiplier=1.5
            )

    def test_zero_steps_zero_distance_accepted(self, validator):
        result = validator.validate(
            "user-1", StepSubmission(steps=0, distance=0.0), multiplier=1.5
        )

        assert result.accepted is True

    def test_negative_distance_rejected(self, validator):
        with pytest.raises(ValidationError):
            validator.validate(
                "user-1", StepSubmission(steps=100, distance=-1.0), multiplier=1.5
            )

    def test_max_steps_accepted(self, validator):
        result = validator.validate(
            "user-1", StepSubmission(steps=100000), multiplier=1.5
        )

        assert result.accepted is True


class TestSuspiciousDetection:
    """수동 입력 이상치 판정 테스트"""

    def test_cold_start_accepts_large_manual_entry(self, validator, step_repo):
        """기록이 없으면 평균 비교 없이 허용"""
        # Given
        step_repo.get_average_daily_steps.return_value = 0.0

        # When
        result = validator.validate(
            "user-1", StepSubmission(steps=99999, source=StepSourceEnum.MANUAL), multiplier=1.5
        )

        # Then
        assert result.accepted is True
        assert result.anomaly_score == 0.0

    def test_manual_entry_above_multiplier_flagged(self, validator, step_repo):
        """평균 5000 대비 8000 수동 입력은 의심 (비율 1.6)"""
        # Given
        step_repo.get_average_daily_steps.return_value = 5000.0

        # When
        result = validator.validate(
            "user-1", StepSubmission(steps=8000, source=StepSourceEnum.MANUAL), multiplier=1.5
        )

        # Then
        assert result.accepted is False
        assert result.anomaly_score == pytest.approx(60.0)
        assert result.baseline == 5000.0

    def test_device_entry_is_trusted(self, validator, step_repo):
        """기기 데이터는 평균과 무관하게 허용"""
        step_repo.get_average_daily_steps.return_value = 5000.0

        result = validator.validate(
            "user-1", StepSubmission(steps=8000, source=StepSourceEnum.DEVICE), multiplier=1.5
        )

        assert result.accepted is True
        step_repo.get_average_daily_steps.assert_not_called()

    def test_manual_entry_at_threshold_accepted(self, validator, step_repo):
        step_repo.get_average_daily_steps.return_value = 4000.0

        result = validator.validate(
            "user-1", StepSubmission(steps=6000, source=StepSourceEnum.MANUAL), multiplier=1.5
        )

        assert result.accepted is True
        assert result.anomaly_score == pytest.approx(50.0)

    def test_custom_multiplier(self, validator, step_repo):
        step_repo.get_average_daily_steps.return_value = 5000.0

        result = validator.validate(
            "user-1", StepSubmission(steps=8000, source=StepSourceEnum.MANUAL), multiplier=2.0
        )

        assert result.accepted is True

    @pytest.mark.parametrize(
        "ratio, expected",
        [(0.5, 0.0), (1.0, 0.0), (1.25, 25.0), (1.5, 50.0), (2.0, 100.0), (5.0, 100.0)],
    )
    def test_anomaly_score_scale(self, ratio, expected):
        assert StepValidator.anomaly_score(ratio, 1.5) == pytest.approx(expected)
