"""
코인 서비스 - 지갑 잔액의 유일한 변경 주체

모든 변경 연산(grant / spend / freeze / unfreeze / penalize)은
1. 지갑 행 잠금 (사용자 단위 직렬화)
2. 조건부 UPDATE 로 잔액 증감
3. 원장 항목 추가
를 하나의 트랜잭션에서 수행합니다. 실패 시 지갑과 원장 모두 변경 전 상태로 남습니다.

commit=False 로 호출하면 상위 서비스(주문 등)의 트랜잭션에 합류하며,
이 경우 commit/rollback 은 호출자가 책임집니다.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy.orm import Session

from fitapi.core.exceptions import (
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidStateError,
    ValidationError,
    WalletNotFoundError,
)
from fitapi.models.coin_transaction import TransactionTypeEnum
from fitapi.repositories.coin_transaction_repository import CoinTransactionRepository
from fitapi.repositories.wallet_repository import WalletRepository
from fitapi.schemas.coins import (
    CoinBalance,
    CoinReference,
    CoinTransactionHistoryResponse,
    GrantType,
    WalletIntegrityResponse,
    WalletSnapshot,
)
import logging

logger = logging.getLogger(__name__)

MAX_HISTORY_PAGE_SIZE = 100


class CoinService:
    """코인 지갑/원장 비즈니스 로직을 담당하는 서비스"""

    def __init__(self, db: Session):
        self.db = db
        self.wallet_repo = WalletRepository(db)
        self.transaction_repo = CoinTransactionRepository(db)

    # ==================== 내부 헬퍼 ====================

    @staticmethod
    def _validate_amount(amount) -> None:
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise InvalidAmountError(amount)

    @staticmethod
    def _parse_grant_type(type: Union[str, GrantType]) -> GrantType:
        try:
            return GrantType(type)
        except ValueError:
            raise ValidationError(
                f"Unsupported grant type: {type}",
                details={"field": "type", "allowed": [t.value for t in GrantType]},
            )

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

    def _read_balance(self, user_id: str) -> CoinBalance:
        wallet = self.wallet_repo.get_by_user_id(user_id)
        if wallet is None:
            raise WalletNotFoundError(user_id)
        return CoinBalance(
            available_coins=wallet.available_coins,
            frozen_coins=wallet.frozen_coins,
            total_earned=wallet.total_earned,
            total_spent=wallet.total_spent,
        )

    # ==================== 조회 ====================

    def get_balance(self, user_id: str) -> CoinBalance:
        """사용자 코인 잔액 조회

        Args:
            user_id: 사용자 ID

        Returns:
            CoinBalance: 잔액 스냅샷

        Raises:
            WalletNotFoundError: 지갑이 없는 경우 (0 잔액과 구분)
        """
        return self._read_balance(user_id)

    def has_enough(self, user_id: str, amount: int) -> bool:
        """잔액 충분 여부 (잠금 없는 참고용 조회, 최종 판단은 spend/freeze 내부에서)"""
        wallet = self.wallet_repo.get_by_user_id(user_id)
        if wallet is None:
            return False
        return wallet.available_coins >= amount

    def get_transaction_history(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> CoinTransactionHistoryResponse:
        """코인 거래 내역 조회 (최신순)"""
        if limit > MAX_HISTORY_PAGE_SIZE:
            limit = MAX_HISTORY_PAGE_SIZE

        entries, total = self.transaction_repo.get_history(
            user_id=user_id, limit=limit, offset=offset
        )
        return CoinTransactionHistoryResponse(
            transactions=entries,
            total=total,
            has_next=offset + limit < total,
        )

    # ==================== 변경 연산 ====================

    def _credit(
        self,
        wallet: WalletSnapshot,
        amount: int,
        grant_type: GrantType,
        reference: Optional[CoinReference],
    ) -> CoinBalance:
        """잠금을 잡은 지갑에 지급 적용 (grant / grant_once 공통)"""
        user_id = wallet.user_id
        if grant_type == GrantType.REFUND:
            # 환불은 누적 획득을 늘리지 않으므로 잔액이 누적 획득을 넘지 않아야 함
            held = wallet.available_coins + wallet.frozen_coins
            if held + amount > wallet.total_earned:
                logger.warning(
                    f"Rejected refund of {amount} coins for user {user_id}: "
                    f"balance {held} would exceed total earned {wallet.total_earned}"
                )
                raise InvalidStateError(
                    f"Refund of {amount} exceeds coins previously spent",
                    details={
                        "requested": amount,
                        "refundable": max(wallet.total_earned - held, 0),
                    },
                )

        earned_delta = 0 if grant_type == GrantType.REFUND else amount
        if not self.wallet_repo.apply_delta(
            user_id, available_delta=amount, earned_delta=earned_delta
        ):
            raise InvalidStateError(f"Failed to credit wallet for user {user_id}")
        self.transaction_repo.record(
            user_id=user_id,
            type=grant_type.value,
            amount=amount,
            reference=reference,
        )
        return self._read_balance(user_id)

    def grant(
        self,
        user_id: str,
        amount: int,
        type: Union[str, GrantType] = GrantType.EARNED,
        reference: Optional[CoinReference] = None,
        commit: bool = True,
    ) -> CoinBalance:
        """코인 지급 (earned / bonus / refund)

        지갑이 없으면 0 잔액으로 생성합니다.
        refund 는 이전에 사용된 코인을 돌려주는 것이므로 total_earned 를 늘리지 않으며,
        available + frozen 이 total_earned 를 넘게 되면 InvalidStateError 입니다.

        Args:
            user_id: 사용자 ID
            amount: 지급 금액 (양의 정수)
            type: 지급 유형
            reference: 원인 이벤트
            commit: False 면 호출자 트랜잭션에 합류

        Returns:
            CoinBalance: 지급 후 잔액
        """
        self._validate_amount(amount)
        grant_type = self._parse_grant_type(type)

        with self._unit_of_work(commit):
            wallet = self.wallet_repo.get_or_create_for_update(user_id)
            balance = self._credit(wallet, amount, grant_type, reference)

        logger.info(
            f"Granted {amount} coins ({grant_type.value}) to user {user_id}. "
            f"Available: {balance.available_coins}"
        )
        return balance

    def grant_once(
        self,
        user_id: str,
        amount: int,
        reference: CoinReference,
        type: Union[str, GrantType] = GrantType.EARNED,
        commit: bool = True,
    ) -> Optional[CoinBalance]:
        """같은 참조로 이미 지급된 적이 없을 때만 지급

        원장 확인을 지갑 잠금 안에서 하므로 같은 참조에 대한 동시 지급 중
        하나만 반영됩니다.

        Returns:
            Optional[CoinBalance]: 지급 후 잔액, 이미 지급된 경우 None
        """
        self._validate_amount(amount)
        grant_type = self._parse_grant_type(type)
        if not reference.id:
            raise ValidationError(
                "Reference id is required for a one-time grant",
                details={"field": "reference.id"},
            )

        with self._unit_of_work(commit):
            wallet = self.wallet_repo.get_or_create_for_update(user_id)
            if self.transaction_repo.exists_for_reference(
                user_id=user_id,
                type=grant_type.value,
                reference_type=reference.type,
                reference_id=reference.id,
            ):
                logger.info(
                    f"Skipped {grant_type.value} grant for user {user_id}: "
                    f"{reference.type}/{reference.id} already granted"
                )
                return None
            balance = self._credit(wallet, amount, grant_type, reference)

        logger.info(
            f"Granted {amount} coins ({grant_type.value}) to user {user_id} "
            f"for {reference.type}/{reference.id}. Available: {balance.available_coins}"
        )
        return balance

    def spend(
        self,
        user_id: str,
        amount: int,
        reference: Optional[CoinReference] = None,
        from_frozen: bool = False,
        commit: bool = True,
    ) -> CoinBalance:
        """코인 사용

        from_frozen=True 이면 주문 확정처럼 동결해 둔 코인을 실제 사용으로 전환합니다.

        Raises:
            WalletNotFoundError: 지갑 없음
            InsufficientBalanceError: 사용 가능 잔액 부족
            InvalidStateError: 동결 잔액 부족 (from_frozen=True)
        """
        self._validate_amount(amount)

        with self._unit_of_work(commit):
            wallet = self.wallet_repo.lock_for_update(user_id)
            if wallet is None:
                raise WalletNotFoundError(user_id)

            if from_frozen:
                if wallet.frozen_coins < amount or not self.wallet_repo.apply_delta(
                    user_id, frozen_delta=-amount, spent_delta=amount
                ):
                    logger.warning(
                        f"Cannot capture {amount} frozen coins for user {user_id}: "
                        f"frozen={wallet.frozen_coins}"
                    )
                    raise InvalidStateError(
                        f"Frozen balance too low. Requested: {amount}, Frozen: {wallet.frozen_coins}",
                        details={"frozen": wallet.frozen_coins, "requested": amount},
                    )
            else:
                if wallet.available_coins < amount or not self.wallet_repo.apply_delta(
                    user_id, available_delta=-amount, spent_delta=amount
                ):
                    logger.warning(
                        f"Insufficient balance for user {user_id}: "
                        f"required={amount}, available={wallet.available_coins}"
                    )
                    raise InsufficientBalanceError(amount, wallet.available_coins)

            self.transaction_repo.record(
                user_id=user_id,
                type=TransactionTypeEnum.SPENT.value,
                amount=amount,
                reference=reference,
                hold=from_frozen,
            )
            balance = self._read_balance(user_id)

        logger.info(
            f"User {user_id} spent {amount} coins{' from hold' if from_frozen else ''}. "
            f"Available: {balance.available_coins}, Frozen: {balance.frozen_coins}"
        )
        return balance

    def freeze(
        self,
        user_id: str,
        amount: int,
        reference: Optional[CoinReference] = None,
        commit: bool = True,
    ) -> CoinBalance:
        """코인 동결 (주문 대기 중 예약)

        동결 시점에는 'reserved' 원장 항목만 남기고, 실제 사용(spent)은 확정 시 기록합니다.

        Raises:
            InsufficientBalanceError: 사용 가능 잔액 부족 (지갑 없음 포함)
        """
        self._validate_amount(amount)

        with self._unit_of_work(commit):
            wallet = self.wallet_repo.lock_for_update(user_id)
            available = wallet.available_coins if wallet else 0

            if (
                wallet is None
                or available < amount
                or not self.wallet_repo.apply_delta(
                    user_id, available_delta=-amount, frozen_delta=amount
                )
            ):
                logger.warning(
                    f"Cannot freeze {amount} coins for user {user_id}: available={available}"
                )
                raise InsufficientBalanceError(amount, available)

            self.transaction_repo.record(
                user_id=user_id,
                type=TransactionTypeEnum.RESERVED.value,
                amount=amount,
                reference=reference,
                hold=True,
            )
            balance = self._read_balance(user_id)

        logger.info(
            f"Froze {amount} coins for user {user_id}. "
            f"Available: {balance.available_coins}, Frozen: {balance.frozen_coins}"
        )
        return balance

    def unfreeze(
        self,
        user_id: str,
        amount: int,
        reference: Optional[CoinReference] = None,
        commit: bool = True,
    ) -> CoinBalance:
        """동결 해제 (주문 취소)

        Raises:
            InvalidStateError: 동결 잔액이 요청 금액보다 적은 경우
        """
        self._validate_amount(amount)

        with self._unit_of_work(commit):
            wallet = self.wallet_repo.lock_for_update(user_id)
            frozen = wallet.frozen_coins if wallet else 0

            if (
                wallet is None
                or frozen < amount
                or not self.wallet_repo.apply_delta(
                    user_id, frozen_delta=-amount, available_delta=amount
                )
            ):
                logger.warning(
                    f"Cannot unfreeze {amount} coins for user {user_id}: frozen={frozen}"
                )
                raise InvalidStateError(
                    f"Cannot unfreeze {amount} coins, only {frozen} frozen",
                    details={"frozen": frozen, "requested": amount},
                )

            self.transaction_repo.record(
                user_id=user_id,
                type=TransactionTypeEnum.REFUND.value,
                amount=amount,
                reference=reference,
                hold=True,
            )
            balance = self._read_balance(user_id)

        logger.info(
            f"Unfroze {amount} coins for user {user_id}. "
            f"Available: {balance.available_coins}, Frozen: {balance.frozen_coins}"
        )
        return balance

    def penalize(
        self,
        user_id: str,
        amount: int,
        reason: str,
        commit: bool = True,
    ) -> CoinBalance:
        """페널티 차감 (부정행위 등)

        사용 가능 잔액 한도 내에서만 차감하며 동결 잔액은 건드리지 않습니다.
        원장에는 실제 차감된 금액이 기록됩니다 (차감액이 0이면 기록 없음).

        Raises:
            WalletNotFoundError: 지갑 없음
        """
        self._validate_amount(amount)

        with self._unit_of_work(commit):
            wallet = self.wallet_repo.lock_for_update(user_id)
            if wallet is None:
                raise WalletNotFoundError(user_id)

            deduct_amount = min(amount, wallet.available_coins)

            if deduct_amount > 0:
                if not self.wallet_repo.apply_delta(user_id, available_delta=-deduct_amount):
                    raise InvalidStateError(
                        f"Failed to deduct penalty for user {user_id}",
                        details={"available": wallet.available_coins, "requested": deduct_amount},
                    )
                self.transaction_repo.record(
                    user_id=user_id,
                    type=TransactionTypeEnum.PENALTY.value,
                    amount=deduct_amount,
                    reference=CoinReference(type="penalty", description=reason[:255]),
                )
            balance = self._read_balance(user_id)

        if deduct_amount < amount:
            logger.warning(
                f"Penalty for user {user_id} saturated: requested={amount}, deducted={deduct_amount}"
            )
        logger.info(f"Penalized user {user_id} by {deduct_amount} coins: {reason}")
        return balance

    # ==================== 관리/대사 ====================

    def archive_wallet(self, user_id: str) -> bool:
        """사용자 삭제 시 지갑 보관 처리 (삭제하지 않음)"""
        with self._unit_of_work(commit=True):
            if not self.wallet_repo.archive(user_id):
                raise WalletNotFoundError(user_id)
        logger.info(f"Archived wallet for user {user_id}")
        return True

    def verify_integrity(self, user_id: str) -> WalletIntegrityResponse:
        """원장 합계로 지갑 잔액을 재계산하여 기록값과 비교

        Returns:
            WalletIntegrityResponse: 검증 결과 (OK/MISMATCH)
        """
        recorded = self._read_balance(user_id)
        sums = self.transaction_repo.sum_by_type(user_id)

        def total(tx_type: TransactionTypeEnum, hold: Optional[bool] = None) -> int:
            if hold is None:
                return sums.get((tx_type.value, False), 0) + sums.get((tx_type.value, True), 0)
            return sums.get((tx_type.value, hold), 0)

        reserved = total(TransactionTypeEnum.RESERVED)
        released = total(TransactionTypeEnum.REFUND, hold=True)
        captured = total(TransactionTypeEnum.SPENT, hold=True)

        calculated = CoinBalance(
            available_coins=(
                total(TransactionTypeEnum.EARNED)
                + total(TransactionTypeEnum.BONUS)
                + total(TransactionTypeEnum.REFUND, hold=False)
                - total(TransactionTypeEnum.SPENT, hold=False)
                - total(TransactionTypeEnum.PENALTY)
                - reserved
                + released
            ),
            frozen_coins=reserved - released - captured,
            total_earned=total(TransactionTypeEnum.EARNED) + total(TransactionTypeEnum.BONUS),
            total_spent=total(TransactionTypeEnum.SPENT),
        )

        status = "OK" if calculated == recorded else "MISMATCH"
        if status == "MISMATCH":
            logger.warning(
                f"Coin ledger mismatch for user {user_id}: recorded={recorded}, calculated={calculated}"
            )
        else:
            logger.info(f"Coin ledger verified for user {user_id}")

        _, entry_count = self.transaction_repo.get_history(user_id, limit=1)
        return WalletIntegrityResponse(
            status=status,
            user_id=user_id,
            recorded=recorded,
            calculated=calculated,
            entry_count=entry_count,
            verified_at=datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S"),
        )
