"""
지갑 리포지토리 - 잔액 변경의 원자적 프리미티브

모든 잔액 변경은 다음 순서로 처리됩니다:
1. SELECT ... FOR UPDATE 로 지갑 행 잠금 (같은 사용자 변경 직렬화)
2. 조건부 UPDATE (컬럼 표현식으로 증감, 음수 방지 조건 포함)
3. 영향받은 행 수(rowcount)로 성공 여부 판단

SQL 문자열로 산술식을 만들지 않고 SQLAlchemy 컬럼 표현식만 사용합니다.
"""

import logging
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fitapi.models.wallet import Wallet as WalletModel
from fitapi.repositories.base import BaseRepository
from fitapi.schemas.coins import WalletSnapshot

logger = logging.getLogger(__name__)


class WalletRepository(BaseRepository[WalletModel, WalletSnapshot]):
    def __init__(self, db: Session):
        super().__init__(WalletModel, WalletSnapshot, db)

    def get_by_user_id(self, user_id: str) -> Optional[WalletSnapshot]:
        """잠금 없는 조회 (표시용, 최종 판단에 사용 금지)"""
        return self.get_by_field("user_id", user_id)

    def lock_for_update(self, user_id: str) -> Optional[WalletSnapshot]:
        """지갑 행을 배타 잠금 후 조회 (트랜잭션 종료 시까지 유지)"""
        wallet = (
            self.db.query(WalletModel)
            .filter(WalletModel.user_id == user_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        return self._to_schema(wallet)

    def get_or_create_for_update(self, user_id: str) -> WalletSnapshot:
        """지갑이 없으면 0 잔액으로 생성한 뒤 잠금 조회

        동시 생성 경합은 SAVEPOINT 안에서 유니크 제약 위반으로 감지하고,
        먼저 생성된 행을 다시 읽습니다.
        """
        wallet = self.lock_for_update(user_id)
        if wallet is not None:
            return wallet

        try:
            with self.db.begin_nested():
                self.db.add(
                    WalletModel(
                        user_id=user_id,
                        available_coins=0,
                        frozen_coins=0,
                        total_earned=0,
                        total_spent=0,
                    )
                )
            logger.info(f"Created wallet for user {user_id}")
        except IntegrityError:
            logger.info(f"Wallet for user {user_id} created concurrently, reusing it")

        return self.lock_for_update(user_id)

    def apply_delta(
        self,
        user_id: str,
        available_delta: int = 0,
        frozen_delta: int = 0,
        earned_delta: int = 0,
        spent_delta: int = 0,
    ) -> bool:
        """잔액 증감을 하나의 조건부 UPDATE 로 적용

        Returns:
            bool: 적용 여부 (음수 방지 조건 불충족 또는 지갑 없음이면 False)
        """
        query = self.db.query(WalletModel).filter(WalletModel.user_id == user_id)

        # 차감되는 컬럼은 결과가 음수가 되지 않는 경우에만 갱신
        if available_delta < 0:
            query = query.filter(WalletModel.available_coins >= -available_delta)
        if frozen_delta < 0:
            query = query.filter(WalletModel.frozen_coins >= -frozen_delta)

        values = {}
        if available_delta:
            values["available_coins"] = WalletModel.available_coins + available_delta
        if frozen_delta:
            values["frozen_coins"] = WalletModel.frozen_coins + frozen_delta
        if earned_delta:
            values["total_earned"] = WalletModel.total_earned + earned_delta
        if spent_delta:
            values["total_spent"] = WalletModel.total_spent + spent_delta

        if not values:
            return True

        updated_count = query.update(values, synchronize_session=False)
        self.db.flush()
        return updated_count == 1

    def archive(self, user_id: str) -> bool:
        updated_count = (
            self.db.query(WalletModel)
            .filter(WalletModel.user_id == user_id)
            .update({"is_archived": True}, synchronize_session=False)
        )
        self.db.flush()
        return updated_count == 1
