import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fitapi.config import Settings
from fitapi.database.connection import build_engine
from fitapi.models.base import Base
import fitapi.models  # noqa: F401
from fitapi.services.coin_service import CoinService
from fitapi.services.order_service import OrderService
from fitapi.services.reservation_service import ReservationService
from fitapi.services.setting_service import SettingService
from fitapi.services.step_service import StepService


@pytest.fixture
def test_settings():
    """테스트용 설정 (.env 무시)"""
    return Settings(_env_file=None, DATABASE_URL="sqlite://", SECRET_KEY="test-secret")


@pytest.fixture
def engine():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    """인메모리 SQLite 세션"""
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=engine, expire_on_commit=False
    )
    session = TestingSessionLocal()
    yield session
    session.close()


@pytest.fixture
def coin_service(db_session):
    return CoinService(db_session)


@pytest.fixture
def reservation_service(db_session):
    return ReservationService(db_session)


@pytest.fixture
def setting_service(db_session, test_settings):
    return SettingService(db_session, test_settings)


@pytest.fixture
def step_service(db_session, test_settings):
    return StepService(db_session, test_settings)


@pytest.fixture
def order_service(db_session, test_settings):
    return OrderService(db_session, test_settings)


@pytest.fixture
def client(db_session, test_settings):
    """컨테이너 세션을 테스트 세션으로 교체한 테스트 클라이언트"""
    from dependency_injector import providers
    from fastapi.testclient import TestClient

    from fitapi.database.session import get_db
    from fitapi.main import create_app

    app = create_app()
    app.container.repositories.get_db.override(providers.Object(db_session))
    app.container.config.config.override(providers.Object(test_settings))
    app.dependency_overrides[get_db] = lambda: db_session

    with TestClient(app) as test_client:
        yield test_client

    app.container.unwire()
    app.container.repositories.get_db.reset_override()
    app.container.config.config.reset_override()


@pytest.fixture
def user_headers():
    from fitapi.core.security import create_access_token

    return {"Authorization": f"Bearer {create_access_token('user-1')}"}


@pytest.fixture
def admin_headers():
    from fitapi.core.security import create_access_token

    return {"Authorization": f"Bearer {create_access_token('admin-1', is_admin=True)}"}
