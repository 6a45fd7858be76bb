# Import all models so Base.metadata knows every table

from .base import Base, BaseModel
from .wallet import Wallet
from .coin_transaction import CoinTransaction, TransactionTypeEnum
from .steps import StepRecord, StepValidation, StepSourceEnum, ValidationStatusEnum
from .order import Order, OrderItem, OrderStatusEnum
from .reservation import CoinReservation, ReservationStateEnum
from .setting import Setting

__all__ = [
    "Base",
    "BaseModel",
    "Wallet",
    "CoinTransaction",
    "TransactionTypeEnum",
    "StepRecord",
    "StepValidation",
    "StepSourceEnum",
    "ValidationStatusEnum",
    "Order",
    "OrderItem",
    "OrderStatusEnum",
    "CoinReservation",
    "ReservationStateEnum",
    "Setting",
]
