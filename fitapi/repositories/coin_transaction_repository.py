from typing import Dict, List, Optional, Tuple

from sqlalchemy import desc, func
from sqlalchemy.orm import Session

from fitapi.models.coin_transaction import CoinTransaction as CoinTransactionModel
from fitapi.repositories.base import BaseRepository
from fitapi.schemas.coins import CoinReference, CoinTransactionEntry


class CoinTransactionRepository(
    BaseRepository[CoinTransactionModel, CoinTransactionEntry]
):
    """코인 원장 리포지토리 - 추가(append)와 조회만 제공"""

    def __init__(self, db: Session):
        super().__init__(CoinTransactionModel, CoinTransactionEntry, db)

    def _to_schema(self, model_instance: CoinTransactionModel) -> Optional[CoinTransactionEntry]:
        if model_instance is None:
            return None

        reference = None
        if model_instance.reference_type or model_instance.reference_description:
            reference = CoinReference(
                type=model_instance.reference_type or "",
                id=model_instance.reference_id,
                description=model_instance.reference_description,
            )

        return CoinTransactionEntry(
            id=model_instance.id,
            type=model_instance.type,
            amount=model_instance.amount,
            hold=bool(model_instance.hold),
            reference=reference,
            created_at=(
                model_instance.created_at.strftime("%Y-%m-%d %H:%M:%S")
                if model_instance.created_at
                else ""
            ),
        )

    def record(
        self,
        user_id: str,
        type: str,
        amount: int,
        reference: Optional[CoinReference] = None,
        hold: bool = False,
    ) -> CoinTransactionEntry:
        """원장 항목 추가 (commit 은 호출자 트랜잭션에서)"""
        return self.create(
            user_id=user_id,
            type=type,
            amount=amount,
            hold=hold,
            reference_type=reference.type if reference else None,
            reference_id=reference.id if reference else None,
            reference_description=reference.description if reference else None,
        )

    def get_history(
        self, user_id: str, limit: int = 50, offset: int = 0
    ) -> Tuple[List[CoinTransactionEntry], int]:
        """사용자 원장 조회 (최신순, 페이징)"""
        base_query = self.db.query(CoinTransactionModel).filter(
            CoinTransactionModel.user_id == user_id
        )
        total = base_query.count()
        rows = (
            base_query.order_by(
                desc(CoinTransactionModel.created_at), desc(CoinTransactionModel.id)
            )
            .limit(limit)
            .offset(offset)
            .all()
        )
        return self._to_schema_list(rows), total

    def sum_by_type(self, user_id: str) -> Dict[Tuple[str, bool], int]:
        """(type, hold) 별 금액 합계 - 정합성 검증용"""
        rows = (
            self.db.query(
                CoinTransactionModel.type,
                CoinTransactionModel.hold,
                func.sum(CoinTransactionModel.amount),
            )
            .filter(CoinTransactionModel.user_id == user_id)
            .group_by(CoinTransactionModel.type, CoinTransactionModel.hold)
            .all()
        )
        return {(tx_type, bool(hold)): int(total or 0) for tx_type, hold, total in rows}

    def exists_for_reference(
        self, user_id: str, type: str, reference_type: str, reference_id: str
    ) -> bool:
        return self.exists(
            user_id=user_id,
            type=type,
            reference_type=reference_type,
            reference_id=reference_id,
        )
