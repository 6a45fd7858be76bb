import pytest
from sqlalchemy.orm import sessionmaker
from unittest.mock import patch

from fitapi.core.exceptions import (
    ConflictError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)
from fitapi.database.connection import build_engine
from fitapi.models.base import Base
from fitapi.models.order import Order, OrderStatusEnum
from fitapi.models.reservation import CoinReservation
from fitapi.schemas.orders import OrderItemCreate
from fitapi.services.coin_service import CoinService
from fitapi.services.order_service import OrderService

USER = "user-1"


def _items(price=250, quantity=2):
    return [OrderItemCreate(product_id="water-bottle", quantity=quantity, price_per_unit=price)]


@pytest.fixture
def funded(coin_service):
    coin_service.grant(USER, 500)
    return coin_service


class TestOrderLifecycle:
    """주문 생성/확정/취소 테스트"""

    def test_create_order_freezes_coins(self, order_service, funded):
        # When
        order = order_service.create_order(USER, _items())

        # Then
        assert order.status == OrderStatusEnum.PENDING
        assert order.total_coins == 500
        assert order.order_code.startswith("ORD-")
        assert len(order.items) == 1
        assert order.items[0].subtotal == 500
        balance = funded.get_balance(USER)
        assert balance.available_coins == 0
        assert balance.frozen_coins == 500

    def test_confirm_order_spends_frozen_coins(self, order_service, funded):
        # Given
        order = order_service.create_order(USER, _items())

        # When
        confirmed = order_service.confirm_order(order.id, USER)

        # Then
        assert confirmed.status == OrderStatusEnum.CONFIRMED
        assert confirmed.confirmed_at is not None
        balance = funded.get_balance(USER)
        assert balance.available_coins == 0
        assert balance.frozen_coins == 0
        assert balance.total_spent == 500
        assert funded.verify_integrity(USER).status == "OK"

    def test_cancel_pending_order_releases_hold(self, order_service, funded, db_session):
        # Given
        order = order_service.create_order(USER, _items())

        # When
        cancelled = order_service.cancel_order(order.id, USER, reason="changed mind")

        # Then
        assert cancelled.status == OrderStatusEnum.CANCELLED
        assert cancelled.cancelled_reason == "changed mind"
        balance = funded.get_balance(USER)
        assert balance.available_coins == 500
        assert balance.frozen_coins == 0
        assert balance.total_spent == 0
        reservation = db_session.query(CoinReservation).one()
        assert reservation.state == "released"

    def test_cancel_confirmed_order_refunds(self, order_service, funded):
        """확정 후 취소는 환불 지급 (누적 사용/획득은 유지)"""
        # Given
        order = order_service.create_order(USER, _items())
        order_service.confirm_order(order.id, USER)

        # When
        order_service.cancel_order(order.id, USER)

        # Then
        balance = funded.get_balance(USER)
        assert balance.available_coins == 500
        assert balance.total_spent == 500
        assert balance.total_earned == 500
        assert funded.verify_integrity(USER).status == "OK"

    def test_cancel_twice_conflicts(self, order_service, funded):
        order = order_service.create_order(USER, _items())
        order_service.cancel_order(order.id, USER)

        with pytest.raises(ConflictError):
            order_service.cancel_order(order.id, USER)

        assert funded.get_balance(USER).available_coins == 500

    def test_insufficient_balance_leaves_nothing(self, order_service, funded, db_session):
        with pytest.raises(InsufficientBalanceError):
            order_service.create_order(USER, _items(price=300))

        assert db_session.query(Order).count() == 0
        assert db_session.query(CoinReservation).count() == 0
        assert funded.get_balance(USER).available_coins == 500

    @pytest.mark.parametrize(
        "items",
        [
            [],
            [OrderItemCreate(product_id="p", quantity=0, price_per_unit=10)],
            [OrderItemCreate(product_id="p", quantity=1, price_per_unit=0)],
        ],
    )
    def test_invalid_items_rejected(self, order_service, funded, items):
        with pytest.raises(ValidationError):
            order_service.create_order(USER, items)

    def test_retry_with_same_order_id_is_idempotent(self, order_service, funded, db_session):
        # Given
        first = order_service.create_order(USER, _items(price=100), order_id="client-order-1")

        # When
        second = order_service.create_order(USER, _items(price=100), order_id="client-order-1")

        # Then
        assert second.id == first.id
        assert db_session.query(Order).count() == 1
        assert funded.get_balance(USER).frozen_coins == 200

    def test_order_id_of_other_user_conflicts(self, order_service, funded):
        order_service.create_order(USER, _items(price=100), order_id="client-order-1")

        with pytest.raises(ConflictError):
            order_service.create_order("user-2", _items(price=100), order_id="client-order-1")

    def test_confirm_other_users_order(self, order_service, funded):
        order = order_service.create_order(USER, _items())

        with pytest.raises(ConflictError):
            order_service.confirm_order(order.id, "user-2")

    def test_confirm_unknown_order(self, order_service):
        with pytest.raises(NotFoundError):
            order_service.confirm_order("missing", USER)


class TestConcurrentConfirm:
    """동시 확정 시 이중 사용 방지 테스트"""

    def test_stale_confirm_loses_compare_and_swap(self, db_session, test_settings, funded):
        """먼저 확정된 주문을 오래된 스냅샷으로 다시 확정하면 CAS 에서 실패"""
        # Given
        first = OrderService(db_session, test_settings)
        second = OrderService(db_session, test_settings)
        order = first.create_order(USER, _items())
        stale_snapshot = first.order_repo.get_order(order.id)

        first.confirm_order(order.id, USER)

        current_snapshot = stale_snapshot.model_copy(update={"status": OrderStatusEnum.CONFIRMED})

        # When
        with patch.object(
            second.order_repo, "get_order", side_effect=[stale_snapshot, current_snapshot]
        ):
            with pytest.raises(ConflictError):
                second.confirm_order(order.id, USER)

        # Then
        balance = funded.get_balance(USER)
        assert balance.total_spent == 500
        assert balance.frozen_coins == 0
        assert balance.available_coins == 0
        assert funded.verify_integrity(USER).status == "OK"

    @pytest.fixture
    def file_engine(self, tmp_path):
        engine = build_engine(f"sqlite:///{tmp_path / 'orders.db'}")
        Base.metadata.create_all(bind=engine)
        yield engine
        engine.dispose()

    def test_second_session_loses_compare_and_swap(self, file_engine, test_settings):
        """두 세션이 같은 대기 주문을 확정하면 늦은 쪽은 CAS 에서 실패하고 코인은 한 번만 사용됨"""
        make_session = sessionmaker(bind=file_engine, expire_on_commit=False)
        first_db, second_db = make_session(), make_session()
        try:
            # Given
            CoinService(first_db).grant(USER, 500)
            first = OrderService(first_db, test_settings)
            second = OrderService(second_db, test_settings)
            order = first.create_order(USER, _items())

            seen_by_second = second.order_repo.get_order(order.id)
            second_db.rollback()  # SQLite 읽기 잠금 해제
            assert seen_by_second.status == OrderStatusEnum.PENDING

            # When
            first.confirm_order(order.id, USER)
            with pytest.raises(ConflictError) as exc_info:
                second._transition(seen_by_second, OrderStatusEnum.CONFIRMED)

            # Then
            assert exc_info.value.details["current"] == OrderStatusEnum.CONFIRMED.value
            coins = CoinService(second_db)
            balance = coins.get_balance(USER)
            assert balance.total_spent == 500
            assert balance.frozen_coins == 0
            assert balance.available_coins == 0
            assert coins.verify_integrity(USER).status == "OK"
        finally:
            first_db.close()
            second_db.close()


class TestAdminStatusUpdate:
    """관리자 상태 변경 테스트"""

    def test_full_fulfilment_path(self, order_service, funded):
        order = order_service.create_order(USER, _items())

        for status in (
            OrderStatusEnum.CONFIRMED,
            OrderStatusEnum.PROCESSING,
            OrderStatusEnum.SHIPPED,
            OrderStatusEnum.DELIVERED,
        ):
            updated = order_service.update_order_status(
                order.id, status, tracking_number="TRK-1", admin_id="admin-1"
            )
            assert updated.status == status

        assert updated.tracking_number == "TRK-1"
        assert updated.delivered_at is not None
        assert funded.get_balance(USER).total_spent == 500

    def test_refund_after_delivery(self, order_service, funded):
        order = order_service.create_order(USER, _items())
        for status in (
            OrderStatusEnum.CONFIRMED,
            OrderStatusEnum.PROCESSING,
            OrderStatusEnum.SHIPPED,
            OrderStatusEnum.DELIVERED,
            OrderStatusEnum.REFUNDED,
        ):
            order_service.update_order_status(order.id, status)

        balance = funded.get_balance(USER)
        assert balance.available_coins == 500
        assert balance.total_spent == 500

    def test_illegal_transition(self, order_service, funded):
        order = order_service.create_order(USER, _items())

        with pytest.raises(ConflictError) as exc_info:
            order_service.update_order_status(order.id, OrderStatusEnum.SHIPPED)

        assert exc_info.value.details["from"] == "pending"
        assert exc_info.value.details["to"] == "shipped"

    def test_order_stats(self, order_service, funded):
        # Given
        first = order_service.create_order(USER, _items(price=100))
        order_service.confirm_order(first.id, USER)
        order_service.create_order(USER, _items(price=50))

        # When
        stats = order_service.get_order_stats(USER)

        # Then
        assert stats.total_orders == 2
        assert stats.total_coins_spent == 200
        assert stats.pending_count == 1
        assert stats.average_order_value == 200.0

    def test_get_orders_and_detail(self, order_service, funded):
        order = order_service.create_order(USER, _items(price=100))

        listing = order_service.get_orders(USER, status=OrderStatusEnum.PENDING)

        assert listing.total == 1
        assert listing.orders[0].id == order.id
        assert order_service.get_order_detail(order.id, USER).id == order.id
        with pytest.raises(NotFoundError):
            order_service.get_order_detail(order.id, "user-2")
