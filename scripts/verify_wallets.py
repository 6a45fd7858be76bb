"""
지갑 정합성 일괄 검증 스크립트

모든 지갑에 대해 원장 합계와 잔액을 비교하고, 불일치 지갑 수를 종료 코드로 돌려줍니다.
--reconcile 옵션을 주면 걸음 보상 지급 누락분도 함께 재지급합니다.
"""

import argparse
import logging
import sys
import os

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fitapi.config import settings
from fitapi.database.session import get_db_context
from fitapi.logging_config import setup_logging
from fitapi.models.wallet import Wallet
from fitapi.services.coin_service import CoinService
from fitapi.services.step_service import StepService

logger = logging.getLogger("fitapi.scripts.verify_wallets")


def verify_wallets(reconcile: bool = False) -> int:
    mismatches = 0
    # 재지급은 서비스가 직접 커밋하므로 검증만 할 때는 아무것도 남기지 않음
    with get_db_context(commit=reconcile) as db:
        user_ids = [row.user_id for row in db.query(Wallet.user_id).all()]
        coin_service = CoinService(db)
        step_service = StepService(db, settings)

        for user_id in user_ids:
            if reconcile:
                step_service.reconcile_step_rewards(user_id)

            result = coin_service.verify_integrity(user_id)
            if result.status != "OK":
                mismatches += 1

    logger.info(f"Verified {len(user_ids)} wallets, {mismatches} mismatched")
    return mismatches


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Verify coin wallets against the ledger")
    parser.add_argument("--reconcile", action="store_true", help="re-grant missing step rewards first")
    args = parser.parse_args()

    setup_logging(settings.LOG_LEVEL)
    sys.exit(1 if verify_wallets(reconcile=args.reconcile) else 0)
