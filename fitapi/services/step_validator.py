import logging

from fitapi.config import Settings
from fitapi.core.exceptions import ValidationError
from fitapi.models.steps import StepSourceEnum
from fitapi.repositories.step_record_repository import StepRecordRepository
from fitapi.schemas.steps import StepSubmission, StepValidationResult

logger = logging.getLogger(__name__)


class StepValidator:
    """걸음 수 제출 검증기

    1. 범위 검증 (0 ~ MAX_STEPS_PER_DAY)
    2. 보폭 검증 (distance / steps 가 [MIN, MAX] 구간 안)
    3. 수동 입력만 개인 평균 대비 이상치 판정 (기기/웨어러블 소스는 신뢰)

    범위/보폭 위반은 ValidationError 로, 이상치는 accepted=False 결과로 돌려줍니다.
    """

    def __init__(self, step_repo: StepRecordRepository, settings: Settings):
        self.step_repo = step_repo
        self.settings = settings

    def _check_range(self, steps: int) -> None:
        if steps < 0:
            raise ValidationError(
                "Steps cannot be negative", details={"field": "steps", "value": steps}
            )
        if steps > self.settings.MAX_STEPS_PER_DAY:
            raise ValidationError(
                f"Steps cannot exceed {self.settings.MAX_STEPS_PER_DAY} per day",
                details={"field": "steps", "value": steps},
            )

    def _check_stride(self, steps: int, distance: float) -> None:
        if distance < 0:
            raise ValidationError(
                "Distance cannot be negative",
                details={"field": "distance", "value": distance},
            )
        if steps == 0:
            if distance > 0:
                raise ValidationError(
                    "Distance reported without any steps",
                    details={"field": "distance", "value": distance},
                )
            return

        meters_per_step = distance / steps
        if not (
            self.settings.MIN_METERS_PER_STEP
            <= meters_per_step
            <= self.settings.MAX_METERS_PER_STEP
        ):
            raise ValidationError(
                f"Unrealistic stride length: {meters_per_step:.2f}m per step",
                details={
                    "field": "distance",
                    "meters_per_step": meters_per_step,
                    "min": self.settings.MIN_METERS_PER_STEP,
                    "max": self.settings.MAX_METERS_PER_STEP,
                },
            )

    @staticmethod
    def anomaly_score(ratio: float, multiplier: float) -> float:
        """평균 대비 비율을 0~100 점수로 환산 (임계값에서 50점)"""
        score = (ratio - 1) / (multiplier - 1) * 50
        return max(0.0, min(100.0, score))

    def validate(
        self, user_id: str, submission: StepSubmission, multiplier: float
    ) -> StepValidationResult:
        """제출 검증

        Args:
            user_id: 사용자 ID
            submission: 걸음 수 제출
            multiplier: 이상치 판정 배수 (설정 저장소 값)

        Returns:
            StepValidationResult: 판정 결과

        Raises:
            ValidationError: 범위 또는 보폭 위반
        """
        self._check_range(submission.steps)
        if submission.distance is not None:
            self._check_stride(submission.steps, submission.distance)

        if submission.source != StepSourceEnum.MANUAL:
            return StepValidationResult(accepted=True, anomaly_score=0.0, reason="Trusted source")

        average = self.step_repo.get_average_daily_steps(user_id)
        if average <= 0:
            return StepValidationResult(
                accepted=True, anomaly_score=0.0, reason="No history", baseline=0.0
            )

        ratio = submission.steps / average
        score = self.anomaly_score(ratio, multiplier)

        if ratio > multiplier:
            logger.warning(
                f"Suspicious manual step entry for user {user_id}: "
                f"steps={submission.steps}, average={average:.1f}, ratio={ratio:.2f}"
            )
            return StepValidationResult(
                accepted=False,
                anomaly_score=score,
                reason=(
                    f"Manual entry of {submission.steps} steps is {ratio:.2f}x "
                    f"the personal average of {average:.0f}"
                ),
                baseline=average,
            )

        return StepValidationResult(
            accepted=True, anomaly_score=score, reason="Within personal range", baseline=average
        )
