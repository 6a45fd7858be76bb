"""
테이블 생성 스크립트 (로컬 개발/신규 환경용)

이미 있는 테이블은 건드리지 않습니다. --drop 을 주면 모두 지우고 다시 만듭니다.
"""

import argparse
import logging
import os
import sys

sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import fitapi.models  # noqa: F401  테이블 등록
from fitapi.config import settings
from fitapi.database.connection import engine
from fitapi.logging_config import setup_logging
from fitapi.models.base import Base

logger = logging.getLogger("fitapi.scripts.init_db")


def init_db(drop: bool = False) -> None:
    target = engine.url.render_as_string(hide_password=True)
    if drop:
        if settings.ENVIRONMENT == "production":
            raise SystemExit("Refusing to drop tables in production")
        logger.warning(f"Dropping all tables on {target}")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)
    logger.info(f"Created {len(Base.metadata.tables)} tables on {target}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Create fitapi tables")
    parser.add_argument("--drop", action="store_true", help="drop existing tables first")
    args = parser.parse_args()

    setup_logging(settings.LOG_LEVEL)
    init_db(drop=args.drop)
