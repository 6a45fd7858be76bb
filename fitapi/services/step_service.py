"""
걸음 수 서비스 - 제출 검증, 기록 저장, 코인 보상 지급

기록 저장과 코인 지급은 별도 트랜잭션입니다.
지급이 실패해도 기록은 유지되며(reward_granted=False),
reconcile_step_rewards 로 누락분을 다시 지급할 수 있습니다.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional

import pytz
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fitapi.config import Settings
from fitapi.core.exceptions import (
    ConflictError,
    NotFoundError,
    SuspiciousActivityError,
    ValidationError,
)
from fitapi.models.steps import ValidationStatusEnum
from fitapi.repositories.step_record_repository import (
    StepRecordRepository,
    StepValidationRepository,
)
from fitapi.schemas.coins import CoinReference, GrantType
from fitapi.schemas.steps import (
    RewardReconciliationResponse,
    StepHistoryResponse,
    StepRecordResponse,
    StepsForDate,
    StepSubmission,
    StepValidationResponse,
    WeeklyStepSummary,
)
from fitapi.services.coin_service import CoinService
from fitapi.services.setting_service import SettingService
from fitapi.services.step_validator import StepValidator
import logging

logger = logging.getLogger(__name__)

STEP_REWARD_REFERENCE = "step_reward"


class StepService:
    """걸음 수 기록/보상 서비스"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.step_repo = StepRecordRepository(db)
        self.validation_repo = StepValidationRepository(db)
        self.coin_service = CoinService(db)
        self.setting_service = SettingService(db, settings)
        self.validator = StepValidator(self.step_repo, settings)

    def _today(self) -> date:
        return datetime.now(pytz.timezone(self.settings.TIMEZONE)).date()

    def calculate_coin_reward(self, steps: int) -> int:
        """걸음 수 -> 코인 (STEPS_PER_COIN 당 1코인, 제출 건당 상한)"""
        if steps <= 0:
            return 0
        return min(
            steps // self.settings.STEPS_PER_COIN,
            self.settings.MAX_COINS_PER_SUBMISSION,
        )

    # ==================== 제출 파이프라인 ====================

    def record_steps(self, user_id: str, submission: StepSubmission) -> StepRecordResponse:
        """걸음 수 제출 처리

        Args:
            user_id: 사용자 ID
            submission: 제출 데이터

        Returns:
            StepRecordResponse: 저장된 기록 (reward_granted 로 지급 여부 표시)

        Raises:
            ValidationError: 범위/보폭 위반 (아무것도 저장되지 않음)
            SuspiciousActivityError: 이상치 판정 (검토 대기 항목만 저장)
            ConflictError: 같은 날짜/소스 기록 중복
        """
        multiplier = self.setting_service.get_suspicious_multiplier()
        result = self.validator.validate(user_id, submission, multiplier)
        recorded_date = submission.recorded_date or self._today()

        if not result.accepted:
            try:
                validation = self.validation_repo.create(
                    user_id=user_id,
                    steps=submission.steps,
                    distance=submission.distance,
                    source=submission.source.value,
                    recorded_date=recorded_date,
                    anomaly_score=result.anomaly_score,
                    reason=result.reason,
                    status=ValidationStatusEnum.PENDING.value,
                )
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

            raise SuspiciousActivityError(
                "Step submission flagged for review",
                details={
                    "validation_id": validation.id,
                    "anomaly_score": result.anomaly_score,
                    "reason": result.reason,
                },
            )

        return self._record_and_reward(
            user_id=user_id,
            steps=submission.steps,
            distance=submission.distance,
            source=submission.source.value,
            recorded_date=recorded_date,
        )

    def _record_and_reward(
        self,
        user_id: str,
        steps: int,
        distance: Optional[float],
        source: str,
        recorded_date: date,
        before_commit: Optional[Callable[[StepRecordResponse], None]] = None,
    ) -> StepRecordResponse:
        reward = self.calculate_coin_reward(steps)

        try:
            record = self.step_repo.create_record(
                user_id=user_id,
                steps=steps,
                distance=distance,
                source=source,
                recorded_date=recorded_date,
                coins_awarded=reward,
            )
            if before_commit:
                before_commit(record)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            logger.warning(
                f"Duplicate step record for user {user_id} on {recorded_date} ({source})"
            )
            raise ConflictError(
                f"Steps already recorded for {recorded_date} from {source}",
                details={"recorded_date": str(recorded_date), "source": source},
            )
        except Exception:
            self.db.rollback()
            raise

        reward_granted = True
        if reward > 0:
            try:
                self.coin_service.grant_once(
                    user_id=user_id,
                    amount=reward,
                    type=GrantType.EARNED,
                    reference=CoinReference(
                        type=STEP_REWARD_REFERENCE,
                        id=record.id,
                        description=f"{steps} steps on {recorded_date}",
                    ),
                )
            except Exception as e:
                # 기록은 이미 커밋됨, reconcile_step_rewards 로 재지급
                logger.error(
                    f"Step reward grant failed for user {user_id}, record {record.id}, "
                    f"amount {reward}: {str(e)}",
                    exc_info=True,
                )
                reward_granted = False

        logger.info(
            f"Recorded {steps} steps for user {user_id} on {recorded_date}, reward {reward}"
        )
        return record.model_copy(update={"reward_granted": reward_granted})

    def reconcile_step_rewards(self, user_id: str) -> RewardReconciliationResponse:
        """보상 원장 항목이 없는 기록에 대해 코인 재지급

        지급 여부 확인은 grant_once 가 지갑 잠금 안에서 하므로 파이프라인의 지급이나
        다른 재지급 호출과 겹쳐도 기록당 한 번만 지급됩니다.
        """
        granted_records: List[str] = []
        coins_granted = 0

        for record in self.step_repo.get_rewarded_records(user_id):
            balance = self.coin_service.grant_once(
                user_id=user_id,
                amount=record.coins_awarded,
                type=GrantType.EARNED,
                reference=CoinReference(
                    type=STEP_REWARD_REFERENCE,
                    id=record.id,
                    description=f"{record.steps} steps on {record.recorded_date} (reconciled)",
                ),
            )
            if balance is None:
                continue
            granted_records.append(record.id)
            coins_granted += record.coins_awarded

        if granted_records:
            logger.info(
                f"Reconciled {len(granted_records)} step rewards ({coins_granted} coins) for user {user_id}"
            )
        return RewardReconciliationResponse(
            user_id=user_id, granted_records=granted_records, coins_granted=coins_granted
        )

    # ==================== 검토 큐 (관리자) ====================

    def list_pending_validations(
        self, min_score: float = 0, limit: int = 50
    ) -> List[StepValidationResponse]:
        return self.validation_repo.get_pending(min_score=min_score, limit=limit)

    def _get_pending_validation(self, validation_id: str) -> StepValidationResponse:
        validation = self.validation_repo.get_by_id(validation_id)
        if validation is None:
            raise NotFoundError(f"Step validation not found: {validation_id}")
        if validation.status != ValidationStatusEnum.PENDING.value:
            logger.warning(f"Validation {validation_id} already reviewed: {validation.status}")
            raise ConflictError(
                f"Validation already {validation.status}",
                details={"validation_id": validation_id, "status": validation.status},
            )
        return validation

    def approve_validation(
        self, validation_id: str, admin_id: str, comment: Optional[str] = None
    ) -> StepRecordResponse:
        """의심 제출 승인 - 이상치 검사 없이 기록 저장 후 보상 지급"""
        validation = self._get_pending_validation(validation_id)

        def link_validation(record: StepRecordResponse) -> None:
            if not self.validation_repo.mark_reviewed(
                validation_id,
                ValidationStatusEnum.APPROVED,
                admin_id=admin_id,
                comment=comment,
                step_record_id=record.id,
            ):
                raise ConflictError(
                    "Validation was reviewed concurrently",
                    details={"validation_id": validation_id},
                )

        record = self._record_and_reward(
            user_id=validation.user_id,
            steps=validation.steps,
            distance=validation.distance,
            source=validation.source,
            recorded_date=validation.recorded_date,
            before_commit=link_validation,
        )
        logger.info(f"Admin {admin_id} approved step validation {validation_id}")
        return record

    def reject_validation(
        self, validation_id: str, admin_id: str, comment: Optional[str] = None
    ) -> StepValidationResponse:
        """의심 제출 거절 - 기록/보상 없음"""
        self._get_pending_validation(validation_id)

        try:
            if not self.validation_repo.mark_reviewed(
                validation_id,
                ValidationStatusEnum.REJECTED,
                admin_id=admin_id,
                comment=comment,
            ):
                raise ConflictError(
                    "Validation was reviewed concurrently",
                    details={"validation_id": validation_id},
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Admin {admin_id} rejected step validation {validation_id}")
        return self.validation_repo.get_by_id(validation_id)

    # ==================== 조회 ====================

    def get_today_steps(self, user_id: str) -> StepsForDate:
        today = self._today()
        records = self.step_repo.get_steps_for_date_range(user_id, today, today)
        distances = [r.distance for r in records if r.distance is not None]
        return StepsForDate(
            date=today,
            steps=sum(r.steps for r in records),
            distance=sum(distances) if distances else None,
        )

    def get_history(
        self, user_id: str, days: int = 30, limit: int = 50, offset: int = 0
    ) -> StepHistoryResponse:
        """최근 N일 걸음 기록 (최신순)"""
        if days < 1 or days > 365:
            raise ValidationError(
                "Days must be between 1 and 365", details={"field": "days", "value": days}
            )

        end_date = self._today()
        start_date = end_date - timedelta(days=days - 1)
        records = self.step_repo.get_steps_for_date_range(user_id, start_date, end_date)
        return StepHistoryResponse(
            records=records[offset : offset + limit], total=len(records)
        )

    def get_weekly_summary(
        self, user_id: str, end_date: Optional[date] = None
    ) -> WeeklyStepSummary:
        """최근 7일 요약 (일별 합계, 기록 없는 날은 0)"""
        week_end = end_date or self._today()
        week_start = week_end - timedelta(days=6)
        records = self.step_repo.get_steps_for_date_range(user_id, week_start, week_end)

        steps_by_day = defaultdict(int)
        distance_by_day = defaultdict(float)
        for record in records:
            steps_by_day[record.recorded_date] += record.steps
            if record.distance is not None:
                distance_by_day[record.recorded_date] += record.distance

        breakdown = []
        for offset in range(7):
            day = week_start + timedelta(days=offset)
            breakdown.append(
                StepsForDate(
                    date=day,
                    steps=steps_by_day.get(day, 0),
                    distance=distance_by_day.get(day),
                )
            )

        return WeeklyStepSummary(
            week_start=week_start,
            week_end=week_end,
            total_steps=sum(r.steps for r in records),
            coins_earned=sum(r.coins_awarded for r in records),
            daily_breakdown=breakdown,
        )

    def get_best_day(self, user_id: str) -> Optional[StepsForDate]:
        best = self.step_repo.get_best_day(user_id)
        if best is None:
            return None
        return StepsForDate(**best)
