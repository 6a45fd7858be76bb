from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from fitapi.config import settings


def _enable_sqlite_savepoints(engine) -> None:
    # pysqlite 의 자체 트랜잭션 처리를 끄고 BEGIN 을 직접 발행 (SAVEPOINT 지원)
    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_engine(database_url: str, echo: bool = False, **kwargs):
    """DATABASE_URL 에 맞는 엔진 생성 (sqlite 는 테스트/로컬 개발용)"""
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            **kwargs,
        )
        _enable_sqlite_savepoints(engine)
        return engine

    return create_engine(
        database_url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,  # 연결 유효성 검사
        pool_recycle=3600,  # 1시간마다 연결 재생성
        echo=echo,
        **kwargs,
    )


# SQL 로그는 setup_logging(sql_echo=...) 에서 켬
engine = build_engine(settings.DATABASE_URL)

# Use expire_on_commit=False to avoid DetachedInstanceError when accessing
# attributes after commit within the same request scope (common FastAPI pattern).
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,
)
