import pytest

from fitapi.core.exceptions import (
    ConflictError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from fitapi.schemas.coins import CoinReference

USER = "user-1"
REF = CoinReference(type="order", id="order-1")


@pytest.fixture
def funded(coin_service):
    coin_service.grant(USER, 300)
    return coin_service


class TestReservationService:
    """코인 예약 테스트"""

    def test_reserve_is_idempotent_on_reference(self, reservation_service, funded):
        # When
        first = reservation_service.reserve(USER, 100, REF)
        second = reservation_service.reserve(USER, 100, REF)

        # Then
        assert second.id == first.id
        assert funded.get_balance(USER).frozen_coins == 100

    def test_reserve_mismatch_conflicts(self, reservation_service, funded):
        reservation_service.reserve(USER, 100, REF)

        with pytest.raises(ConflictError):
            reservation_service.reserve(USER, 150, REF)

        assert funded.get_balance(USER).frozen_coins == 100

    def test_reserve_requires_reference_id(self, reservation_service, funded):
        with pytest.raises(ValidationError):
            reservation_service.reserve(USER, 10, CoinReference(type="order"))

    def test_reserve_insufficient(self, reservation_service, funded):
        with pytest.raises(InsufficientBalanceError):
            reservation_service.reserve(USER, 301, REF)

        assert reservation_service.reservation_repo.get_by_reference("order", "order-1") is None

    def test_capture_then_release_conflicts(self, reservation_service, funded):
        """종결된 예약은 다시 전이할 수 없음"""
        # Given
        reservation_service.reserve(USER, 100, REF)
        captured = reservation_service.capture(REF)

        # When
        with pytest.raises(ConflictError) as exc_info:
            reservation_service.release(REF)

        # Then
        assert captured.state == "spent"
        assert exc_info.value.details["current_state"] == "spent"
        assert exc_info.value.details["attempted_state"] == "released"
        balance = funded.get_balance(USER)
        assert balance.available_coins == 200
        assert balance.frozen_coins == 0
        assert balance.total_spent == 100

    def test_release_returns_coins(self, reservation_service, funded):
        reservation_service.reserve(USER, 100, REF)

        released = reservation_service.release(REF)

        assert released.state == "released"
        assert funded.get_balance(USER).available_coins == 300

    def test_capture_unknown_reference(self, reservation_service):
        with pytest.raises(NotFoundError):
            reservation_service.capture(CoinReference(type="order", id="missing"))
