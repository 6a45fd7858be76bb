import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import case, desc, func
from sqlalchemy.orm import Session

from fitapi.models.order import (
    Order as OrderModel,
    OrderItem as OrderItemModel,
    OrderStatusEnum,
)
from fitapi.repositories.base import BaseRepository
from fitapi.schemas.orders import OrderDetailResponse, OrderItemCreate


class OrderRepository(BaseRepository[OrderModel, OrderDetailResponse]):
    """주문 리포지토리 - 상태 전이는 CAS(조건부 UPDATE)로만 수행"""

    def __init__(self, db: Session):
        super().__init__(OrderModel, OrderDetailResponse, db)

    @staticmethod
    def generate_order_code(prefix: str = "ORD") -> str:
        today = datetime.now(timezone.utc).strftime("%Y%m%d")
        return f"{prefix}-{today}-{uuid.uuid4().hex[:8].upper()}"

    def create_order(
        self,
        order_id: str,
        user_id: str,
        order_code: str,
        total_coins: int,
        items: List[OrderItemCreate],
        shipping_address: Optional[str] = None,
    ) -> OrderDetailResponse:
        order = OrderModel(
            id=order_id,
            order_code=order_code,
            user_id=user_id,
            total_coins=total_coins,
            status=OrderStatusEnum.PENDING.value,
            shipping_address=shipping_address,
        )
        order.items = [
            OrderItemModel(
                product_id=item.product_id,
                quantity=item.quantity,
                price_per_unit=item.price_per_unit,
                subtotal=item.price_per_unit * item.quantity,
            )
            for item in items
        ]
        self.db.add(order)
        self.db.flush()
        self.db.refresh(order)
        return self._to_schema(order)

    def get_order(self, order_id: str) -> Optional[OrderDetailResponse]:
        return self.get_by_id(order_id)

    def transition_status(
        self,
        order_id: str,
        from_status: OrderStatusEnum,
        to_status: OrderStatusEnum,
        fields: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """현재 상태가 from_status 일 때만 to_status 로 변경

        Returns:
            bool: 전이 성공 여부 (경합에서 진 경우 False)
        """
        values: Dict[str, Any] = {"status": to_status.value}
        if fields:
            values.update(fields)

        updated_count = (
            self.db.query(OrderModel)
            .filter(
                OrderModel.id == order_id,
                OrderModel.status == from_status.value,
            )
            .update(values, synchronize_session=False)
        )
        self.db.flush()
        return updated_count == 1

    def get_by_user_id(
        self,
        user_id: str,
        limit: int = 20,
        offset: int = 0,
        status: Optional[OrderStatusEnum] = None,
    ) -> Tuple[List[OrderDetailResponse], int]:
        query = self.db.query(OrderModel).filter(OrderModel.user_id == user_id)
        if status is not None:
            query = query.filter(OrderModel.status == status.value)

        total = query.count()
        rows = (
            query.order_by(desc(OrderModel.created_at))
            .limit(limit)
            .offset(offset)
            .all()
        )
        return self._to_schema_list(rows), total

    def get_order_stats(self, user_id: Optional[str] = None) -> Dict[str, int]:
        charged_statuses = [
            OrderStatusEnum.CONFIRMED.value,
            OrderStatusEnum.PROCESSING.value,
            OrderStatusEnum.SHIPPED.value,
            OrderStatusEnum.DELIVERED.value,
        ]
        query = self.db.query(
            func.count(OrderModel.id),
            func.sum(
                case(
                    (OrderModel.status.in_(charged_statuses), OrderModel.total_coins),
                    else_=0,
                )
            ),
            func.sum(case((OrderModel.status.in_(charged_statuses), 1), else_=0)),
            func.sum(case((OrderModel.status == OrderStatusEnum.PENDING.value, 1), else_=0)),
            func.sum(case((OrderModel.status == OrderStatusEnum.DELIVERED.value, 1), else_=0)),
        )
        if user_id is not None:
            query = query.filter(OrderModel.user_id == user_id)

        total_orders, total_spent, charged_count, pending_count, delivered_count = query.one()
        return {
            "total_orders": int(total_orders or 0),
            "total_coins_spent": int(total_spent or 0),
            "charged_count": int(charged_count or 0),
            "pending_count": int(pending_count or 0),
            "delivered_count": int(delivered_count or 0),
        }
