from pydantic import BaseModel, Field
from typing import List, Optional
from enum import Enum


class GrantType(str, Enum):
    EARNED = "earned"
    BONUS = "bonus"
    REFUND = "refund"


class CoinReference(BaseModel):
    """잔액 변경의 원인 이벤트 (type/id/description)"""

    type: str = Field(..., max_length=100, description="참조 유형 (order, step_reward 등)")
    id: Optional[str] = Field(None, max_length=64, description="참조 ID")
    description: Optional[str] = Field(None, max_length=255, description="설명")


class CoinBalance(BaseModel):
    """지갑 잔액 스냅샷"""

    available_coins: int = Field(..., description="사용 가능 잔액")
    frozen_coins: int = Field(..., description="동결 잔액")
    total_earned: int = Field(..., description="누적 획득")
    total_spent: int = Field(..., description="누적 사용")

    class Config:
        from_attributes = True


class WalletSnapshot(CoinBalance):
    """지갑 레코드 (리포지토리 반환용)"""

    user_id: str
    is_archived: bool = False


class CoinTransactionEntry(BaseModel):
    """코인 원장 항목"""

    id: str = Field(..., description="원장 항목 ID")
    type: str = Field(..., description="거래 유형")
    amount: int = Field(..., description="금액")
    hold: bool = Field(False, description="동결 잔액 관련 여부")
    reference: Optional[CoinReference] = Field(None, description="참조")
    created_at: str = Field(..., description="생성 시간")


class CoinTransactionHistoryResponse(BaseModel):
    """코인 거래 내역 응답"""

    transactions: List[CoinTransactionEntry] = Field(..., description="거래 목록")
    total: int = Field(..., description="전체 항목 수")
    has_next: bool = Field(..., description="다음 페이지 존재 여부")


class AdminGrantRequest(BaseModel):
    """관리자 코인 지급 요청"""

    user_id: str = Field(..., min_length=1, description="사용자 ID")
    amount: int = Field(..., gt=0, description="지급 금액")
    type: GrantType = Field(GrantType.BONUS, description="지급 유형")
    description: Optional[str] = Field(None, max_length=255, description="사유")


class AdminPenalizeRequest(BaseModel):
    """관리자 코인 차감(페널티) 요청"""

    user_id: str = Field(..., min_length=1, description="사용자 ID")
    amount: int = Field(..., gt=0, description="차감 요청 금액")
    reason: str = Field(..., min_length=1, max_length=255, description="사유")


class WalletIntegrityResponse(BaseModel):
    """원장 기반 지갑 정합성 검증 결과"""

    status: str = Field(..., description="검증 상태 (OK, MISMATCH)")
    user_id: str = Field(..., description="사용자 ID")
    recorded: CoinBalance = Field(..., description="지갑에 기록된 잔액")
    calculated: CoinBalance = Field(..., description="원장으로 재계산한 잔액")
    entry_count: int = Field(..., description="원장 항목 수")
    verified_at: str = Field(..., description="검증 시간")
