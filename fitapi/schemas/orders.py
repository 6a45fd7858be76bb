from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from fitapi.models.order import OrderStatusEnum


class OrderItemCreate(BaseModel):
    product_id: str = Field(..., min_length=1, description="상품 ID")
    quantity: int = Field(..., description="수량")
    price_per_unit: int = Field(..., description="개당 가격 (코인)")


class OrderCreateRequest(BaseModel):
    items: List[OrderItemCreate] = Field(..., description="주문 항목")
    shipping_address: Optional[str] = Field(None, max_length=1000, description="배송지")
    order_id: Optional[str] = Field(
        None, max_length=36, description="멱등 재시도를 위한 클라이언트 주문 ID"
    )


class OrderCancelRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500, description="취소 사유")


class OrderStatusUpdateRequest(BaseModel):
    status: OrderStatusEnum
    tracking_number: Optional[str] = Field(None, max_length=100)
    cancelled_reason: Optional[str] = Field(None, max_length=500)


class OrderItemResponse(BaseModel):
    id: str
    product_id: str
    quantity: int
    price_per_unit: int
    subtotal: int

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    id: str
    order_code: str
    user_id: str
    total_coins: int
    status: OrderStatusEnum
    items: List[OrderItemResponse] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class OrderDetailResponse(OrderResponse):
    shipping_address: Optional[str] = None
    tracking_number: Optional[str] = None
    cancelled_reason: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    total: int


class OrderStatsResponse(BaseModel):
    total_orders: int
    total_coins_spent: int
    average_order_value: float
    pending_count: int
    delivered_count: int


class ReservationResponse(BaseModel):
    id: str
    user_id: str
    reference_type: str
    reference_id: str
    amount: int
    state: str

    class Config:
        from_attributes = True
