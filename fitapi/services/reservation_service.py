from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fitapi.core.exceptions import ConflictError, NotFoundError, ValidationError
from fitapi.models.reservation import ReservationStateEnum
from fitapi.repositories.reservation_repository import ReservationRepository
from fitapi.schemas.coins import CoinReference
from fitapi.schemas.orders import ReservationResponse
from fitapi.services.coin_service import CoinService
import logging

logger = logging.getLogger(__name__)


class ReservationService:
    """코인 예약(동결) 서비스

    (reference.type, reference.id) 당 예약은 하나이며
    frozen -> spent (capture) 또는 frozen -> released (release) 로 한 번만 전이됩니다.
    """

    def __init__(self, db: Session):
        self.db = db
        self.reservation_repo = ReservationRepository(db)
        self.coin_service = CoinService(db)

    @contextmanager
    def _unit_of_work(self, commit: bool):
        try:
            yield
            if commit:
                self.db.commit()
        except Exception:
            if commit:
                self.db.rollback()
            raise

    @staticmethod
    def _require_reference_id(reference: CoinReference) -> str:
        if not reference.id:
            raise ValidationError(
                "Reservation reference requires an id", details={"field": "reference.id"}
            )
        return reference.id

    def reserve(
        self, user_id: str, amount: int, reference: CoinReference, commit: bool = True
    ) -> ReservationResponse:
        """코인 예약 (참조 기준 멱등)

        같은 참조로 이미 예약이 있으면 사용자/금액이 같을 때 기존 예약을 그대로 반환합니다.

        Raises:
            InsufficientBalanceError: 사용 가능 잔액 부족
            ConflictError: 같은 참조에 다른 예약이 존재
        """
        reference_id = self._require_reference_id(reference)

        with self._unit_of_work(commit):
            existing = self.reservation_repo.get_by_reference(
                reference.type, reference_id, for_update=True
            )
            if existing:
                if existing.user_id == user_id and existing.amount == amount:
                    logger.info(
                        f"Reservation for {reference.type}:{reference_id} already exists, reusing"
                    )
                    return existing
                logger.warning(
                    f"Reservation conflict for {reference.type}:{reference_id}: "
                    f"existing user={existing.user_id} amount={existing.amount}"
                )
                raise ConflictError(
                    f"A different reservation already exists for {reference.type}:{reference_id}",
                    details={"reference_type": reference.type, "reference_id": reference_id},
                )

            self.coin_service.freeze(user_id, amount, reference=reference, commit=False)
            try:
                reservation = self.reservation_repo.create_reservation(
                    user_id=user_id,
                    reference_type=reference.type,
                    reference_id=reference_id,
                    amount=amount,
                )
            except IntegrityError:
                raise ConflictError(
                    f"Reservation for {reference.type}:{reference_id} was created concurrently",
                    details={"reference_type": reference.type, "reference_id": reference_id},
                )

        logger.info(f"Reserved {amount} coins for user {user_id} ({reference.type}:{reference_id})")
        return reservation

    def _settle(
        self,
        reference: CoinReference,
        to_state: ReservationStateEnum,
        commit: bool,
    ) -> ReservationResponse:
        reference_id = self._require_reference_id(reference)

        with self._unit_of_work(commit):
            reservation = self.reservation_repo.get_by_reference(
                reference.type, reference_id, for_update=True
            )
            if reservation is None:
                raise NotFoundError(
                    f"Reservation not found for {reference.type}:{reference_id}"
                )

            if not self.reservation_repo.transition_state(
                reservation.id, ReservationStateEnum.FROZEN, to_state
            ):
                current = self.reservation_repo.get_by_id(reservation.id)
                logger.warning(
                    f"Reservation {reservation.id} is {current.state}, cannot move to {to_state.value}"
                )
                raise ConflictError(
                    f"Reservation is {current.state}, cannot move to {to_state.value}",
                    details={
                        "reservation_id": reservation.id,
                        "current_state": current.state,
                        "attempted_state": to_state.value,
                    },
                )

            if to_state == ReservationStateEnum.SPENT:
                self.coin_service.spend(
                    reservation.user_id,
                    reservation.amount,
                    reference=reference,
                    from_frozen=True,
                    commit=False,
                )
            else:
                self.coin_service.unfreeze(
                    reservation.user_id,
                    reservation.amount,
                    reference=reference,
                    commit=False,
                )

        logger.info(
            f"Reservation {reservation.id} ({reference.type}:{reference_id}) -> {to_state.value}"
        )
        return reservation.model_copy(update={"state": to_state.value})

    def capture(self, reference: CoinReference, commit: bool = True) -> ReservationResponse:
        """예약 확정 - 동결 코인을 실제 사용으로 전환"""
        return self._settle(reference, ReservationStateEnum.SPENT, commit)

    def release(self, reference: CoinReference, commit: bool = True) -> ReservationResponse:
        """예약 해제 - 동결 코인을 사용 가능 잔액으로 복귀"""
        return self._settle(reference, ReservationStateEnum.RELEASED, commit)
