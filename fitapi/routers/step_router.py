"""
걸음 수 API 라우터

- POST /steps: 걸음 수 제출 (검증 후 기록, 코인 지급)
- GET /steps/today: 오늘 걸음 수
- GET /steps/history: 최근 N일 기록
- GET /steps/weekly: 최근 7일 요약
- GET /steps/best: 최고 기록일
- POST /steps/reconcile: 누락된 보상 재지급
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from dependency_injector.wiring import inject, Provide

from fitapi.core.auth_middleware import get_current_user
from fitapi.schemas.auth import CurrentUser
from fitapi.services.step_service import StepService
from fitapi.containers import Container
from fitapi.schemas.steps import (
    RewardReconciliationResponse,
    StepHistoryResponse,
    StepRecordResponse,
    StepsForDate,
    StepSubmission,
    WeeklyStepSummary,
)

router = APIRouter(prefix="/steps", tags=["steps"])


@router.post("", response_model=StepRecordResponse, status_code=status.HTTP_201_CREATED)
@inject
async def submit_steps(
    submission: StepSubmission,
    current_user: CurrentUser = Depends(get_current_user),
    step_service: StepService = Depends(Provide[Container.services.step_service]),
) -> StepRecordResponse:
    """
    걸음 수 제출

    HTTP Status:
        201: 기록 저장 (reward_granted=False 면 코인 지급은 나중에 재시도)
        409: 같은 날짜/소스로 이미 제출됨
        422: 범위/보폭 위반 또는 이상치로 검토 대기 (SUSPICIOUS_ACTIVITY)
    """
    return step_service.record_steps(current_user.id, submission)


@router.get("/today", response_model=StepsForDate)
@inject
async def get_today_steps(
    current_user: CurrentUser = Depends(get_current_user),
    step_service: StepService = Depends(Provide[Container.services.step_service]),
) -> StepsForDate:
    return step_service.get_today_steps(current_user.id)


@router.get("/history", response_model=StepHistoryResponse)
@inject
async def get_step_history(
    days: int = Query(30, description="조회 기간 (1-365일)"),
    limit: int = Query(50, ge=1, le=100, description="페이지 크기"),
    offset: int = Query(0, ge=0, description="오프셋"),
    current_user: CurrentUser = Depends(get_current_user),
    step_service: StepService = Depends(Provide[Container.services.step_service]),
) -> StepHistoryResponse:
    """최근 N일 걸음 기록 (최신순)"""
    return step_service.get_history(current_user.id, days=days, limit=limit, offset=offset)


@router.get("/weekly", response_model=WeeklyStepSummary)
@inject
async def get_weekly_summary(
    current_user: CurrentUser = Depends(get_current_user),
    step_service: StepService = Depends(Provide[Container.services.step_service]),
) -> WeeklyStepSummary:
    return step_service.get_weekly_summary(current_user.id)


@router.get("/best", response_model=Optional[StepsForDate])
@inject
async def get_best_day(
    current_user: CurrentUser = Depends(get_current_user),
    step_service: StepService = Depends(Provide[Container.services.step_service]),
) -> Optional[StepsForDate]:
    return step_service.get_best_day(current_user.id)


@router.post("/reconcile", response_model=RewardReconciliationResponse)
@inject
async def reconcile_my_rewards(
    current_user: CurrentUser = Depends(get_current_user),
    step_service: StepService = Depends(Provide[Container.services.step_service]),
) -> RewardReconciliationResponse:
    """지급 실패로 누락된 걸음 보상 재지급"""
    return step_service.reconcile_step_rewards(current_user.id)
