"""
코인 지갑 데이터 모델

사용자당 하나의 지갑이 존재하며 잔액의 실시간 원본(source of truth)입니다.
모든 변경은 CoinService 를 통해서만 이루어지고, 변경마다 coin_transactions
원장에 한 건이 함께 기록됩니다.
"""

from sqlalchemy import BigInteger, Boolean, CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from fitapi.models.base import BaseModel, generate_uuid


class Wallet(BaseModel):
    __tablename__ = "wallets"
    __table_args__ = (
        CheckConstraint("available_coins >= 0", name="chk_available_nonneg"),
        CheckConstraint("frozen_coins >= 0", name="chk_frozen_nonneg"),
        CheckConstraint("total_earned >= 0", name="chk_earned_nonneg"),
        CheckConstraint("total_spent >= 0", name="chk_spent_nonneg"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)

    # 사용자 식별자 (인증 서비스가 발급, 불투명 값)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    # 사용 가능 잔액
    available_coins: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    # 진행 중 주문에 묶인 잔액 (사용 불가)
    frozen_coins: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    # 누적 획득/사용 (단조 증가)
    total_earned: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_spent: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    # 사용자 삭제 시 지갑은 지우지 않고 보관 처리
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self):
        return (
            f"<Wallet(user_id={self.user_id}, available={self.available_coins}, "
            f"frozen={self.frozen_coins}, earned={self.total_earned}, spent={self.total_spent})>"
        )
