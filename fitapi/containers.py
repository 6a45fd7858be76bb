from dependency_injector import containers, providers

from fitapi.database.session import request_session
from fitapi.services.coin_service import CoinService
from fitapi.services.step_service import StepService
from fitapi.services.order_service import OrderService
from fitapi.services.setting_service import SettingService
from fitapi.config import Settings


class ConfigModule(containers.DeclarativeContainer):
    """Application configuration."""

    config = providers.Singleton(Settings)


class RepositoryModule(containers.DeclarativeContainer):
    """Database sessions."""

    # One session per HTTP request, closed by DBSessionMiddleware.
    # Outside a request (scripts) every call opens a new session.
    get_db = providers.Factory(request_session)


class ServiceModule(containers.DeclarativeContainer):
    """Service layer dependencies."""

    config = providers.DependenciesContainer()
    repositories = providers.DependenciesContainer()

    coin_service = providers.Factory(CoinService, db=repositories.get_db)
    setting_service = providers.Factory(SettingService, db=repositories.get_db, settings=config.config)
    step_service = providers.Factory(StepService, db=repositories.get_db, settings=config.config)
    order_service = providers.Factory(OrderService, db=repositories.get_db, settings=config.config)


class Container(containers.DeclarativeContainer):
    """Application container."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "fitapi.routers.coin_router",
            "fitapi.routers.step_router",
            "fitapi.routers.order_router",
            "fitapi.routers.admin_router",
        ],
    )

    config = providers.Container(ConfigModule)
    repositories = providers.Container(RepositoryModule)
    services = providers.Container(
        ServiceModule, config=config, repositories=repositories
    )
