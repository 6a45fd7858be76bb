"""
주문 API 라우터

- POST /orders: 주문 생성 (코인 동결)
- GET /orders: 내 주문 목록
- GET /orders/stats: 내 주문 통계
- GET /orders/{order_id}: 주문 상세
- POST /orders/{order_id}/confirm: 주문 확정 (동결 코인 사용)
- POST /orders/{order_id}/cancel: 주문 취소 (동결 해제 또는 환불)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from dependency_injector.wiring import inject, Provide

from fitapi.core.auth_middleware import get_current_user
from fitapi.schemas.auth import CurrentUser
from fitapi.services.order_service import OrderService
from fitapi.containers import Container
from fitapi.models.order import OrderStatusEnum
from fitapi.schemas.orders import (
    OrderCancelRequest,
    OrderCreateRequest,
    OrderDetailResponse,
    OrderListResponse,
    OrderStatsResponse,
)

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("", response_model=OrderDetailResponse, status_code=status.HTTP_201_CREATED)
@inject
async def create_order(
    request: OrderCreateRequest,
    current_user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(Provide[Container.services.order_service]),
) -> OrderDetailResponse:
    """
    주문 생성

    HTTP Status:
        201: 주문 생성 (pending, 코인 동결됨)
        400: 잔액 부족 (BALANCE_001)
        422: 주문 항목 오류
    """
    return order_service.create_order(
        user_id=current_user.id,
        items=request.items,
        shipping_address=request.shipping_address,
        order_id=request.order_id,
    )


@router.get("", response_model=OrderListResponse)
@inject
async def get_my_orders(
    limit: int = Query(20, ge=1, le=100, description="페이지 크기"),
    offset: int = Query(0, ge=0, description="오프셋"),
    status_filter: Optional[OrderStatusEnum] = Query(None, alias="status", description="상태 필터"),
    current_user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(Provide[Container.services.order_service]),
) -> OrderListResponse:
    return order_service.get_orders(
        current_user.id, limit=limit, offset=offset, status=status_filter
    )


@router.get("/stats", response_model=OrderStatsResponse)
@inject
async def get_my_order_stats(
    current_user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(Provide[Container.services.order_service]),
) -> OrderStatsResponse:
    return order_service.get_order_stats(current_user.id)


@router.get("/{order_id}", response_model=OrderDetailResponse)
@inject
async def get_order(
    order_id: str = Path(..., description="주문 ID"),
    current_user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(Provide[Container.services.order_service]),
) -> OrderDetailResponse:
    return order_service.get_order_detail(order_id, user_id=current_user.id)


@router.post("/{order_id}/confirm", response_model=OrderDetailResponse)
@inject
async def confirm_order(
    order_id: str = Path(..., description="주문 ID"),
    current_user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(Provide[Container.services.order_service]),
) -> OrderDetailResponse:
    """
    주문 확정

    HTTP Status:
        200: 확정됨 (동결 코인 사용 처리)
        404: 주문 없음
        409: 이미 처리된 주문 또는 다른 사용자의 주문
    """
    return order_service.confirm_order(order_id, current_user.id)


@router.post("/{order_id}/cancel", response_model=OrderDetailResponse)
@inject
async def cancel_order(
    request: Optional[OrderCancelRequest] = None,
    order_id: str = Path(..., description="주문 ID"),
    current_user: CurrentUser = Depends(get_current_user),
    order_service: OrderService = Depends(Provide[Container.services.order_service]),
) -> OrderDetailResponse:
    """주문 취소 (pending: 동결 해제, confirmed: 환불)"""
    reason = request.reason if request else None
    return order_service.cancel_order(order_id, current_user.id, reason=reason)
