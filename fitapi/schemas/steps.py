from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date

from fitapi.models.steps import StepSourceEnum


class StepSubmission(BaseModel):
    """걸음 수 제출 요청"""

    steps: int = Field(..., description="걸음 수")
    distance: Optional[float] = Field(None, description="이동 거리 (m)")
    source: StepSourceEnum = Field(StepSourceEnum.MANUAL, description="데이터 소스")
    recorded_date: Optional[date] = Field(None, description="기록 일자 (기본: 오늘)")


class StepValidationResult(BaseModel):
    """검증기 판정 결과"""

    accepted: bool
    anomaly_score: float = Field(0.0, ge=0, le=100)
    reason: str = ""
    baseline: Optional[float] = Field(None, description="비교에 사용된 평균 걸음 수")


class StepRecordResponse(BaseModel):
    """걸음 기록 응답"""

    id: str
    user_id: str
    steps: int
    distance: Optional[float] = None
    source: str
    recorded_date: date
    coins_awarded: int
    reward_granted: bool = Field(True, description="코인 지급 완료 여부")

    class Config:
        from_attributes = True


class StepsForDate(BaseModel):
    date: date
    steps: int
    distance: Optional[float] = None


class StepHistoryResponse(BaseModel):
    records: List[StepRecordResponse]
    total: int


class WeeklyStepSummary(BaseModel):
    week_start: date
    week_end: date
    total_steps: int
    coins_earned: int
    daily_breakdown: List[StepsForDate]


class StepValidationResponse(BaseModel):
    """관리자 검토 큐 항목"""

    id: str
    user_id: str
    steps: int
    distance: Optional[float] = None
    source: str
    recorded_date: date
    anomaly_score: float
    reason: str
    status: str
    reviewed_by_admin_id: Optional[str] = None
    admin_comment: Optional[str] = None
    step_record_id: Optional[str] = None

    class Config:
        from_attributes = True


class StepReviewRequest(BaseModel):
    comment: Optional[str] = Field(None, max_length=1000, description="관리자 코멘트")


class RewardReconciliationResponse(BaseModel):
    user_id: str
    granted_records: List[str] = Field(default_factory=list)
    coins_granted: int = 0
