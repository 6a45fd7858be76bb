from typing import Optional

from sqlalchemy.orm import Session

from fitapi.models.reservation import CoinReservation as CoinReservationModel, ReservationStateEnum
from fitapi.repositories.base import BaseRepository
from fitapi.schemas.orders import ReservationResponse


class ReservationRepository(BaseRepository[CoinReservationModel, ReservationResponse]):
    """코인 예약 리포지토리"""

    def __init__(self, db: Session):
        super().__init__(CoinReservationModel, ReservationResponse, db)

    def get_by_reference(
        self, reference_type: str, reference_id: str, for_update: bool = False
    ) -> Optional[ReservationResponse]:
        query = self.db.query(CoinReservationModel).filter(
            CoinReservationModel.reference_type == reference_type,
            CoinReservationModel.reference_id == reference_id,
        )
        if for_update:
            query = query.with_for_update()
        return self._to_schema(query.populate_existing().first())

    def create_reservation(
        self, user_id: str, reference_type: str, reference_id: str, amount: int
    ) -> ReservationResponse:
        return self.create(
            user_id=user_id,
            reference_type=reference_type,
            reference_id=reference_id,
            amount=amount,
            state=ReservationStateEnum.FROZEN.value,
        )

    def transition_state(
        self,
        reservation_id: str,
        from_state: ReservationStateEnum,
        to_state: ReservationStateEnum,
    ) -> bool:
        """frozen 에서 종결 상태로 단 한 번만 전이 (CAS)"""
        updated_count = (
            self.db.query(CoinReservationModel)
            .filter(
                CoinReservationModel.id == reservation_id,
                CoinReservationModel.state == from_state.value,
            )
            .update({"state": to_state.value}, synchronize_session=False)
        )
        self.db.flush()
        return updated_count == 1
