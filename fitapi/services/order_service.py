"""
주문 서비스 - 코인 예약 기반 주문 생명주기

생성: 예약(동결) + 주문 행을 한 트랜잭션에서 저장
확정: pending -> confirmed (CAS) 후 예약 capture
취소: pending 이면 예약 해제, 이미 확정된 주문이면 환불 지급
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Set

from sqlalchemy.orm import Session

from fitapi.config import Settings
from fitapi.core.exceptions import ConflictError, NotFoundError, ValidationError
from fitapi.models.base import generate_uuid
from fitapi.models.order import OrderStatusEnum
from fitapi.repositories.order_repository import OrderRepository
from fitapi.schemas.coins import CoinReference, GrantType
from fitapi.schemas.orders import (
    OrderDetailResponse,
    OrderItemCreate,
    OrderListResponse,
    OrderStatsResponse,
)
from fitapi.services.coin_service import CoinService
from fitapi.services.reservation_service import ReservationService
import logging

logger = logging.getLogger(__name__)

ORDER_REFERENCE = "order"

VALID_TRANSITIONS: Dict[OrderStatusEnum, Set[OrderStatusEnum]] = {
    OrderStatusEnum.PENDING: {OrderStatusEnum.CONFIRMED, OrderStatusEnum.CANCELLED},
    OrderStatusEnum.CONFIRMED: {OrderStatusEnum.PROCESSING, OrderStatusEnum.CANCELLED},
    OrderStatusEnum.PROCESSING: {OrderStatusEnum.SHIPPED, OrderStatusEnum.CANCELLED},
    OrderStatusEnum.SHIPPED: {OrderStatusEnum.DELIVERED, OrderStatusEnum.CANCELLED},
    OrderStatusEnum.DELIVERED: {OrderStatusEnum.REFUNDED},
    OrderStatusEnum.CANCELLED: set(),
    OrderStatusEnum.REFUNDED: set(),
}


class OrderService:
    """주문 관련 비즈니스 로직을 담당하는 서비스"""

    def __init__(self, db: Session, settings: Settings):
        self.db = db
        self.settings = settings
        self.order_repo = OrderRepository(db)
        self.coin_service = CoinService(db)
        self.reservation_service = ReservationService(db)

    @staticmethod
    def _reference(order: OrderDetailResponse) -> CoinReference:
        return CoinReference(type=ORDER_REFERENCE, id=order.id, description=order.order_code)

    @staticmethod
    def _validate_items(items: List[OrderItemCreate]) -> int:
        if not items:
            raise ValidationError(
                "Order must contain at least one item", details={"field": "items"}
            )

        for index, item in enumerate(items):
            if item.quantity <= 0:
                raise ValidationError(
                    "Item quantity must be positive",
                    details={"field": f"items[{index}].quantity", "value": item.quantity},
                )
            if item.price_per_unit <= 0:
                raise ValidationError(
                    "Item price must be positive",
                    details={"field": f"items[{index}].price_per_unit", "value": item.price_per_unit},
                )

        total = sum(item.quantity * item.price_per_unit for item in items)
        if total <= 0:
            raise ValidationError("Order total must be greater than 0", details={"total": total})
        return total

    def _get_existing_order(self, order_id: str) -> OrderDetailResponse:
        order = self.order_repo.get_order(order_id)
        if order is None:
            logger.warning(f"Order not found: {order_id}")
            raise NotFoundError(f"Order not found: {order_id}")
        return order

    # ==================== 생성/확정/취소 ====================

    def create_order(
        self,
        user_id: str,
        items: List[OrderItemCreate],
        shipping_address: Optional[str] = None,
        order_id: Optional[str] = None,
    ) -> OrderDetailResponse:
        """주문 생성 (코인 동결 포함)

        Args:
            user_id: 사용자 ID
            items: 주문 항목
            shipping_address: 배송지
            order_id: 클라이언트 지정 주문 ID (재시도 시 기존 주문 반환)

        Returns:
            OrderDetailResponse: 생성된 주문 (pending)

        Raises:
            ValidationError: 항목/금액 오류
            InsufficientBalanceError: 잔액 부족 (주문/예약 모두 남지 않음)
        """
        total_coins = self._validate_items(items)

        if order_id:
            existing = self.order_repo.get_order(order_id)
            if existing:
                if existing.user_id != user_id:
                    raise ConflictError(
                        f"Order id {order_id} is already in use",
                        details={"order_id": order_id},
                    )
                logger.info(f"Order {order_id} already exists for user {user_id}, returning it")
                return existing

        order_id = order_id or generate_uuid()
        order_code = self.order_repo.generate_order_code(self.settings.ORDER_CODE_PREFIX)

        try:
            self.reservation_service.reserve(
                user_id,
                total_coins,
                CoinReference(type=ORDER_REFERENCE, id=order_id, description=order_code),
                commit=False,
            )
            order = self.order_repo.create_order(
                order_id=order_id,
                user_id=user_id,
                order_code=order_code,
                total_coins=total_coins,
                items=items,
                shipping_address=shipping_address,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Order {order.order_code} created for user {user_id}: {total_coins} coins")
        return order

    def confirm_order(self, order_id: str, user_id: str) -> OrderDetailResponse:
        """주문 확정 - 동결 코인 capture"""
        order = self._get_existing_order(order_id)
        if order.user_id != user_id:
            logger.warning(f"User {user_id} attempted to confirm order {order_id} of another user")
            raise ConflictError(
                "Order belongs to another user", details={"order_id": order_id}
            )
        if order.status != OrderStatusEnum.PENDING:
            raise ConflictError(
                f"Cannot confirm order in status {order.status.value}",
                details={"from": order.status.value, "to": OrderStatusEnum.CONFIRMED.value},
            )
        return self._transition(order, OrderStatusEnum.CONFIRMED)

    def cancel_order(
        self, order_id: str, user_id: str, reason: Optional[str] = None
    ) -> OrderDetailResponse:
        """주문 취소 (pending / confirmed 만 가능)"""
        order = self._get_existing_order(order_id)
        if order.user_id != user_id:
            logger.warning(f"User {user_id} attempted to cancel order {order_id} of another user")
            raise ConflictError(
                "Order belongs to another user", details={"order_id": order_id}
            )
        if order.status not in (OrderStatusEnum.PENDING, OrderStatusEnum.CONFIRMED):
            raise ConflictError(
                f"Cannot cancel order in status {order.status.value}",
                details={"from": order.status.value, "to": OrderStatusEnum.CANCELLED.value},
            )
        return self._transition(order, OrderStatusEnum.CANCELLED, cancelled_reason=reason)

    def update_order_status(
        self,
        order_id: str,
        new_status: OrderStatusEnum,
        tracking_number: Optional[str] = None,
        cancelled_reason: Optional[str] = None,
        admin_id: Optional[str] = None,
    ) -> OrderDetailResponse:
        """주문 상태 변경 (관리자용)

        허용된 전이만 가능하며 상태에 따른 코인 처리가 같은 트랜잭션에서 수행됩니다.
        """
        order = self._get_existing_order(order_id)
        updated = self._transition(
            order,
            new_status,
            tracking_number=tracking_number,
            cancelled_reason=cancelled_reason,
        )
        logger.info(
            f"Admin {admin_id} moved order {order.order_code} "
            f"from {order.status.value} to {new_status.value}"
        )
        return updated

    def _transition(
        self,
        order: OrderDetailResponse,
        to_status: OrderStatusEnum,
        tracking_number: Optional[str] = None,
        cancelled_reason: Optional[str] = None,
    ) -> OrderDetailResponse:
        from_status = order.status
        if to_status not in VALID_TRANSITIONS[from_status]:
            logger.warning(
                f"Invalid order transition for {order.id}: {from_status.value} -> {to_status.value}"
            )
            raise ConflictError(
                f"Cannot transition from {from_status.value} to {to_status.value}",
                details={"from": from_status.value, "to": to_status.value},
            )

        now = datetime.now(timezone.utc)
        fields = {}
        if to_status == OrderStatusEnum.CONFIRMED:
            fields["confirmed_at"] = now
        elif to_status == OrderStatusEnum.SHIPPED:
            fields["shipped_at"] = now
            if tracking_number:
                fields["tracking_number"] = tracking_number
        elif to_status == OrderStatusEnum.DELIVERED:
            fields["delivered_at"] = now
        elif to_status == OrderStatusEnum.CANCELLED:
            fields["cancelled_at"] = now
            fields["cancelled_reason"] = cancelled_reason

        reference = self._reference(order)
        try:
            if not self.order_repo.transition_status(order.id, from_status, to_status, fields):
                current = self.order_repo.get_order(order.id)
                logger.warning(
                    f"Order {order.id} changed concurrently: expected {from_status.value}, "
                    f"found {current.status.value}"
                )
                raise ConflictError(
                    f"Order is no longer {from_status.value}",
                    details={
                        "from": from_status.value,
                        "to": to_status.value,
                        "current": current.status.value,
                    },
                )

            if to_status == OrderStatusEnum.CONFIRMED:
                self.reservation_service.capture(reference, commit=False)
            elif to_status == OrderStatusEnum.CANCELLED and from_status == OrderStatusEnum.PENDING:
                self.reservation_service.release(reference, commit=False)
            elif to_status in (OrderStatusEnum.CANCELLED, OrderStatusEnum.REFUNDED):
                self.coin_service.grant(
                    order.user_id,
                    order.total_coins,
                    type=GrantType.REFUND,
                    reference=reference,
                    commit=False,
                )

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Order {order.order_code} {from_status.value} -> {to_status.value} "
            f"({order.total_coins} coins)"
        )
        return self.order_repo.get_order(order.id)

    # ==================== 조회 ====================

    def get_orders(
        self,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
        status: Optional[OrderStatusEnum] = None,
    ) -> OrderListResponse:
        limit = min(limit, self.settings.MAX_PAGE_SIZE)
        orders, total = self.order_repo.get_by_user_id(
            user_id, limit=limit, offset=offset, status=status
        )
        return OrderListResponse(orders=orders, total=total)

    def get_order_detail(
        self, order_id: str, user_id: Optional[str] = None
    ) -> OrderDetailResponse:
        """주문 상세 (user_id 지정 시 본인 주문만)"""
        order = self._get_existing_order(order_id)
        if user_id is not None and order.user_id != user_id:
            raise NotFoundError(f"Order not found: {order_id}")
        return order

    def get_order_stats(self, user_id: Optional[str] = None) -> OrderStatsResponse:
        stats = self.order_repo.get_order_stats(user_id)
        charged_count = stats.pop("charged_count")
        average = stats["total_coins_spent"] / charged_count if charged_count else 0.0
        return OrderStatsResponse(average_order_value=round(average, 2), **stats)
