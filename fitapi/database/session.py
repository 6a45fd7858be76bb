import logging
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Dict, Iterator, Optional

from sqlalchemy.orm import Session

from fitapi.database.connection import SessionLocal

logger = logging.getLogger(__name__)

# 요청마다 DBSessionMiddleware 가 새 dict 를 넣어 둠
_request_sessions: ContextVar[Optional[Dict[str, Session]]] = ContextVar(
    "request_sessions", default=None
)


def request_session() -> Session:
    """현재 요청의 세션 (같은 요청의 서비스들이 공유)

    요청 밖(스크립트 등)에서 호출되면 새 세션을 돌려주며, 닫는 것은 호출자 책임입니다.
    """
    holder = _request_sessions.get()
    if holder is None:
        return SessionLocal()
    if "db" not in holder:
        holder["db"] = SessionLocal()
    return holder["db"]


@contextmanager
def request_session_scope() -> Iterator[None]:
    holder: Dict[str, Session] = {}
    token = _request_sessions.set(holder)
    try:
        yield
    finally:
        _request_sessions.reset(token)
        db = holder.get("db")
        if db is not None:
            if db.in_transaction():
                # 서비스가 커밋하지 않은 작업 (조회 트랜잭션 포함) 은 버림
                db.rollback()
            db.close()


def get_db() -> Iterator[Session]:
    """FastAPI Depends 용 세션 (헬스체크 등 서비스를 거치지 않는 엔드포인트)"""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        if db.in_transaction():
            logger.warning("Request failed with an open transaction, rolling back")
            db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context(commit: bool = True) -> Iterator[Session]:
    """스크립트용 세션

    Args:
        commit: False 면 블록이 끝날 때 커밋하지 않고 롤백 (읽기 전용 점검)
    """
    db = SessionLocal()
    try:
        yield db
        if commit:
            db.commit()
        else:
            db.rollback()
    except Exception:
        logger.exception("Script session failed, rolling back")
        db.rollback()
        raise
    finally:
        db.close()
