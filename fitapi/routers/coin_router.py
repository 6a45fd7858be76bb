"""
코인 지갑 API 라우터

사용자용 엔드포인트:
- GET /coins/balance: 내 코인 잔액 조회
- GET /coins/transactions: 내 코인 거래 내역
- GET /coins/integrity: 내 지갑 정합성 검증

인증 및 권한:
- 모든 엔드포인트는 Bearer 토큰 인증 필요
"""

from fastapi import APIRouter, Depends, Query
from dependency_injector.wiring import inject, Provide

from fitapi.core.auth_middleware import get_current_user
from fitapi.schemas.auth import CurrentUser
from fitapi.services.coin_service import CoinService
from fitapi.containers import Container
from fitapi.schemas.coins import (
    CoinBalance,
    CoinTransactionHistoryResponse,
    WalletIntegrityResponse,
)

router = APIRouter(prefix="/coins", tags=["coins"])


@router.get("/balance", response_model=CoinBalance)
@inject
async def get_my_balance(
    current_user: CurrentUser = Depends(get_current_user),
    coin_service: CoinService = Depends(Provide[Container.services.coin_service]),
) -> CoinBalance:
    """
    내 코인 잔액 조회

    Returns:
        CoinBalance: 사용 가능/동결 잔액과 누적 획득/사용

    HTTP Status:
        200: 성공
        401: 인증 실패
        404: 지갑 없음 (아직 코인을 받은 적 없음)
    """
    return coin_service.get_balance(current_user.id)


@router.get("/transactions", response_model=CoinTransactionHistoryResponse)
@inject
async def get_my_transactions(
    limit: int = Query(50, ge=1, le=100, description="페이지 크기"),
    offset: int = Query(0, ge=0, description="오프셋"),
    current_user: CurrentUser = Depends(get_current_user),
    coin_service: CoinService = Depends(Provide[Container.services.coin_service]),
) -> CoinTransactionHistoryResponse:
    """내 코인 거래 내역 (최신순)"""
    return coin_service.get_transaction_history(current_user.id, limit=limit, offset=offset)


@router.get("/integrity", response_model=WalletIntegrityResponse)
@inject
async def verify_my_wallet(
    current_user: CurrentUser = Depends(get_current_user),
    coin_service: CoinService = Depends(Provide[Container.services.coin_service]),
) -> WalletIntegrityResponse:
    """원장 합계와 지갑 잔액 비교"""
    return coin_service.verify_integrity(current_user.id)
