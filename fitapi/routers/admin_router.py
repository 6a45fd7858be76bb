"""
Admin Router

관리자 전용 API 엔드포인트
- 코인 지급/페널티, 사용자 지갑 조회/정합성 검증/보관
- 의심 걸음 수 제출 검토 (승인/거절)
- 주문 상태 변경 및 전체 통계
- 운영 설정 조회/변경
"""

from typing import List

from fastapi import APIRouter, Depends, Path, Query
from dependency_injector.wiring import inject, Provide

from fitapi.core.auth_middleware import require_admin
from fitapi.schemas.auth import CurrentUser
from fitapi.containers import Container
from fitapi.services.coin_service import CoinService
from fitapi.services.order_service import OrderService
from fitapi.services.setting_service import SettingService
from fitapi.services.step_service import StepService
from fitapi.schemas.coins import (
    AdminGrantRequest,
    AdminPenalizeRequest,
    CoinBalance,
    CoinReference,
    WalletIntegrityResponse,
)
from fitapi.schemas.orders import (
    OrderDetailResponse,
    OrderStatsResponse,
    OrderStatusUpdateRequest,
)
from fitapi.schemas.settings import SettingResponse, SettingUpdateRequest
from fitapi.schemas.steps import (
    RewardReconciliationResponse,
    StepRecordResponse,
    StepReviewRequest,
    StepValidationResponse,
)
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# ==================== 코인 ====================


@router.post("/coins/grant", response_model=CoinBalance)
@inject
async def grant_coins(
    request: AdminGrantRequest,
    current_user: CurrentUser = Depends(require_admin),
    coin_service: CoinService = Depends(Provide[Container.services.coin_service]),
) -> CoinBalance:
    """코인 지급 (bonus 기본)"""
    logger.info(
        f"Admin {current_user.id} granting {request.amount} coins ({request.type.value}) to {request.user_id}"
    )
    return coin_service.grant(
        request.user_id,
        request.amount,
        type=request.type,
        reference=CoinReference(
            type="admin_grant", id=current_user.id, description=request.description
        ),
    )


@router.post("/coins/penalize", response_model=CoinBalance)
@inject
async def penalize_user(
    request: AdminPenalizeRequest,
    current_user: CurrentUser = Depends(require_admin),
    coin_service: CoinService = Depends(Provide[Container.services.coin_service]),
) -> CoinBalance:
    """페널티 차감 (사용 가능 잔액 한도 내)"""
    logger.info(f"Admin {current_user.id} penalizing {request.user_id}: {request.reason}")
    return coin_service.penalize(request.user_id, request.amount, request.reason)


@router.get("/coins/{user_id}/balance", response_model=CoinBalance)
@inject
async def get_user_balance(
    user_id: str = Path(..., description="사용자 ID"),
    current_user: CurrentUser = Depends(require_admin),
    coin_service: CoinService = Depends(Provide[Container.services.coin_service]),
) -> CoinBalance:
    return coin_service.get_balance(user_id)


@router.get("/coins/{user_id}/integrity", response_model=WalletIntegrityResponse)
@inject
async def verify_user_wallet(
    user_id: str = Path(..., description="사용자 ID"),
    current_user: CurrentUser = Depends(require_admin),
    coin_service: CoinService = Depends(Provide[Container.services.coin_service]),
) -> WalletIntegrityResponse:
    return coin_service.verify_integrity(user_id)


@router.post("/coins/{user_id}/archive")
@inject
async def archive_user_wallet(
    user_id: str = Path(..., description="사용자 ID"),
    current_user: CurrentUser = Depends(require_admin),
    coin_service: CoinService = Depends(Provide[Container.services.coin_service]),
) -> dict:
    """사용자 삭제 시 지갑 보관 처리"""
    coin_service.archive_wallet(user_id)
    return {"user_id": user_id, "archived": True}


# ==================== 걸음 수 검토 ====================


@router.get("/steps/validations", response_model=List[StepValidationResponse])
@inject
async def list_pending_validations(
    min_score: float = Query(0, ge=0, le=100, description="최소 이상 점수"),
    limit: int = Query(50, ge=1, le=100, description="조회 개수"),
    current_user: CurrentUser = Depends(require_admin),
    step_service: StepService = Depends(Provide[Container.services.step_service]),
) -> List[StepValidationResponse]:
    """검토 대기 중인 의심 제출 (이상 점수 높은 순)"""
    return step_service.list_pending_validations(min_score=min_score, limit=limit)


@router.post("/steps/validations/{validation_id}/approve", response_model=StepRecordResponse)
@inject
async def approve_validation(
    request: StepReviewRequest,
    validation_id: str = Path(..., description="검토 항목 ID"),
    current_user: CurrentUser = Depends(require_admin),
    step_service: StepService = Depends(Provide[Container.services.step_service]),
) -> StepRecordResponse:
    return step_service.approve_validation(validation_id, current_user.id, request.comment)


@router.post("/steps/validations/{validation_id}/reject", response_model=StepValidationResponse)
@inject
async def reject_validation(
    request: StepReviewRequest,
    validation_id: str = Path(..., description="검토 항목 ID"),
    current_user: CurrentUser = Depends(require_admin),
    step_service: StepService = Depends(Provide[Container.services.step_service]),
) -> StepValidationResponse:
    return step_service.reject_validation(validation_id, current_user.id, request.comment)


@router.post("/steps/{user_id}/reconcile", response_model=RewardReconciliationResponse)
@inject
async def reconcile_user_rewards(
    user_id: str = Path(..., description="사용자 ID"),
    current_user: CurrentUser = Depends(require_admin),
    step_service: StepService = Depends(Provide[Container.services.step_service]),
) -> RewardReconciliationResponse:
    return step_service.reconcile_step_rewards(user_id)


# ==================== 주문 ====================


@router.patch("/orders/{order_id}/status", response_model=OrderDetailResponse)
@inject
async def update_order_status(
    request: OrderStatusUpdateRequest,
    order_id: str = Path(..., description="주문 ID"),
    current_user: CurrentUser = Depends(require_admin),
    order_service: OrderService = Depends(Provide[Container.services.order_service]),
) -> OrderDetailResponse:
    """주문 상태 변경 (허용된 전이만 가능)"""
    return order_service.update_order_status(
        order_id,
        request.status,
        tracking_number=request.tracking_number,
        cancelled_reason=request.cancelled_reason,
        admin_id=current_user.id,
    )


@router.get("/orders/stats", response_model=OrderStatsResponse)
@inject
async def get_order_stats(
    current_user: CurrentUser = Depends(require_admin),
    order_service: OrderService = Depends(Provide[Container.services.order_service]),
) -> OrderStatsResponse:
    return order_service.get_order_stats()


# ==================== 설정 ====================


@router.get("/settings/{key}", response_model=SettingResponse)
@inject
async def get_setting(
    key: str = Path(..., description="설정 키"),
    current_user: CurrentUser = Depends(require_admin),
    setting_service: SettingService = Depends(Provide[Container.services.setting_service]),
) -> SettingResponse:
    return setting_service.get_setting(key)


@router.put("/settings/{key}", response_model=SettingResponse)
@inject
async def update_setting(
    request: SettingUpdateRequest,
    key: str = Path(..., description="설정 키"),
    current_user: CurrentUser = Depends(require_admin),
    setting_service: SettingService = Depends(Provide[Container.services.setting_service]),
) -> SettingResponse:
    return setting_service.update_setting(key, request.value, admin_id=current_user.id)
