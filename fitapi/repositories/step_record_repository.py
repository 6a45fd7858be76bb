from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from fitapi.models.steps import (
    StepRecord as StepRecordModel,
    StepValidation as StepValidationModel,
    ValidationStatusEnum,
)
from fitapi.repositories.base import BaseRepository
from fitapi.schemas.steps import StepRecordResponse, StepValidationResponse


class StepRecordRepository(BaseRepository[StepRecordModel, StepRecordResponse]):
    """걸음 기록 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(StepRecordModel, StepRecordResponse, db)

    def create_record(
        self,
        user_id: str,
        steps: int,
        distance: Optional[float],
        source: str,
        recorded_date: date,
        coins_awarded: int,
    ) -> StepRecordResponse:
        """걸음 기록 생성 - (user, date, source) 중복 시 IntegrityError"""
        return self.create(
            user_id=user_id,
            steps=steps,
            distance=distance,
            source=source,
            recorded_date=recorded_date,
            coins_awarded=coins_awarded,
        )

    def get_average_daily_steps(self, user_id: str) -> float:
        """전체 기록 기준 평균 걸음 수 (기록 없으면 0)"""
        result = (
            self.db.query(func.avg(StepRecordModel.steps))
            .filter(StepRecordModel.user_id == user_id)
            .scalar()
        )
        return float(result or 0)

    def get_steps_for_date_range(
        self, user_id: str, start_date: date, end_date: date
    ) -> List[StepRecordResponse]:
        rows = (
            self.db.query(StepRecordModel)
            .filter(
                StepRecordModel.user_id == user_id,
                StepRecordModel.recorded_date.between(start_date, end_date),
            )
            .order_by(desc(StepRecordModel.recorded_date), desc(StepRecordModel.created_at))
            .all()
        )
        return self._to_schema_list(rows)

    def get_best_day(self, user_id: str) -> Optional[dict]:
        """일별 합계 기준 최고 기록"""
        row = (
            self.db.query(
                StepRecordModel.recorded_date,
                func.sum(StepRecordModel.steps).label("steps"),
                func.sum(StepRecordModel.distance).label("distance"),
            )
            .filter(StepRecordModel.user_id == user_id)
            .group_by(StepRecordModel.recorded_date)
            .order_by(desc("steps"))
            .first()
        )
        if row is None:
            return None
        return {
            "date": row.recorded_date,
            "steps": int(row.steps or 0),
            "distance": float(row.distance) if row.distance else None,
        }

    def get_rewarded_records(self, user_id: str) -> List[StepRecordResponse]:
        """보상이 있는 기록 (지급 누락 대사용)"""
        rows = (
            self.db.query(StepRecordModel)
            .filter(
                StepRecordModel.user_id == user_id,
                StepRecordModel.coins_awarded > 0,
            )
            .order_by(StepRecordModel.created_at)
            .all()
        )
        return self._to_schema_list(rows)


class StepValidationRepository(
    BaseRepository[StepValidationModel, StepValidationResponse]
):
    """의심 제출 검토 큐 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(StepValidationModel, StepValidationResponse, db)

    def get_pending(
        self, min_score: float = 0, limit: int = 50
    ) -> List[StepValidationResponse]:
        rows = (
            self.db.query(StepValidationModel)
            .filter(
                StepValidationModel.status == ValidationStatusEnum.PENDING.value,
                StepValidationModel.anomaly_score >= min_score,
            )
            .order_by(desc(StepValidationModel.anomaly_score))
            .limit(limit)
            .all()
        )
        return self._to_schema_list(rows)

    def mark_reviewed(
        self,
        validation_id: str,
        new_status: ValidationStatusEnum,
        admin_id: str,
        comment: Optional[str] = None,
        step_record_id: Optional[str] = None,
    ) -> bool:
        """pending 상태일 때만 검토 결과 반영 (CAS)"""
        updated_count = (
            self.db.query(StepValidationModel)
            .filter(
                StepValidationModel.id == validation_id,
                StepValidationModel.status == ValidationStatusEnum.PENDING.value,
            )
            .update(
                {
                    "status": new_status.value,
                    "reviewed_by_admin_id": admin_id,
                    "admin_comment": comment,
                    "reviewed_at": datetime.now(timezone.utc),
                    "step_record_id": step_record_id,
                },
                synchronize_session=False,
            )
        )
        self.db.flush()
        return updated_count == 1
