"""
코인 예약(Reservation) 데이터 모델

주문 등이 사용자의 코인을 동결해 둔 상태를 추적합니다.
(reference_type, reference_id) 가 유니크하여 같은 주문으로 두 번 동결되지 않으며,
상태는 frozen -> spent 또는 frozen -> released 로 정확히 한 번만 전이됩니다.
"""

import enum

from sqlalchemy import BigInteger, CheckConstraint, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fitapi.models.base import BaseModel, generate_uuid


class ReservationStateEnum(str, enum.Enum):
    FROZEN = "frozen"
    SPENT = "spent"
    RELEASED = "released"


class CoinReservation(BaseModel):
    __tablename__ = "coin_reservations"
    __table_args__ = (
        UniqueConstraint("reference_type", "reference_id", name="uq_reservation_reference"),
        CheckConstraint("amount > 0", name="chk_reservation_amount_positive"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_uuid)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    reference_type: Mapped[str] = mapped_column(String(100), nullable=False)
    reference_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    state: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ReservationStateEnum.FROZEN.value
    )
