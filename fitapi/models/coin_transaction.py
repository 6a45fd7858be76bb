"""
코인 원장(Ledger) 데이터 모델

잔액에 영향을 주는 모든 이벤트가 한 건씩 기록됩니다.
1. 불변성(Immutable): 한번 생성된 레코드는 수정/삭제되지 않음
2. 원자성(Atomic): 지갑 변경과 같은 트랜잭션에서 기록됨
3. 대사(Reconciliation): 원장 합계로 지갑 상태를 재구성할 수 있음

hold 플래그는 동결 잔액(frozen_coins)으로 들어가거나 나오는 항목을 표시합니다.
- reserved          : 주문 생성 시 동결 (available -> frozen)
- spent  + hold     : 주문 확정 시 동결분 사용 (frozen -> spent)
- refund + hold     : 주문 취소 시 동결 해제 (frozen -> available)
- refund (no hold)  : 이미 사용된 코인 환불 (-> available)
"""

import enum
from typing import Optional

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Index, String, event
from sqlalchemy.orm import Mapped, mapped_column

from fitapi.models.base import BaseModel, generate_uuid


class TransactionTypeEnum(str, enum.Enum):
    EARNED = "earned"
    SPENT = "spent"
    REFUND = "refund"
    BONUS = "bonus"
    PENALTY = "penalty"
    RESERVED = "reserved"


class CoinTransaction(BaseModel):
    __tablename__ = "coin_transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="chk_amount_positive"),
        Index("idx_coin_tx_user_created", "user_id", "created_at"),
        Index("idx_coin_tx_reference", "reference_type", "reference_id"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    hold: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # 원인 이벤트 (예: order / step_reward / admin)
    reference_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    reference_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    reference_description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)


@event.listens_for(CoinTransaction, "before_update")
def _reject_ledger_update(mapper, connection, target):
    raise ValueError(f"Coin transaction {target.id} is immutable")


@event.listens_for(CoinTransaction, "before_delete")
def _reject_ledger_delete(mapper, connection, target):
    raise ValueError(f"Coin transaction {target.id} cannot be deleted")
