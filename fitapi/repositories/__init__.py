# Repository layer - Data access with Pydantic responses

from .base import BaseRepository
from .wallet_repository import WalletRepository
from .coin_transaction_repository import CoinTransactionRepository
from .step_record_repository import StepRecordRepository, StepValidationRepository
from .order_repository import OrderRepository
from .reservation_repository import ReservationRepository
from .setting_repository import SettingRepository

__all__ = [
    "BaseRepository",
    "WalletRepository",
    "CoinTransactionRepository",
    "StepRecordRepository",
    "StepValidationRepository",
    "OrderRepository",
    "ReservationRepository",
    "SettingRepository",
]
