import logging
from dotenv import load_dotenv
from fastapi import FastAPI
from mangum import Mangum
from starlette.middleware.cors import CORSMiddleware

from fitapi import containers
from fitapi.config import settings
from fitapi.core.db_session_middleware import DBSessionMiddleware
from fitapi.core.exception_handlers import register_exception_handlers
from fitapi.core.logging_middleware import LoggingMiddleware
from fitapi.logging_config import setup_logging
from fitapi.routers import (
    admin_router,
    coin_router,
    health_router,
    order_router,
    step_router,
)

load_dotenv("fitapi/.env")
setup_logging(
    settings.LOG_LEVEL,
    json_format=settings.ENVIRONMENT == "production",
    sql_echo=settings.DEBUG,
)
logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.PROJECT_NAME, version=settings.VERSION, debug=settings.DEBUG
    )
    app.container = containers.Container()  # type: ignore

    origins = [o.strip() for o in (settings.ALLOWED_ORIGINS or "*").split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(DBSessionMiddleware)
    app.add_middleware(LoggingMiddleware)

    register_exception_handlers(app)

    app.include_router(health_router.router)
    app.include_router(coin_router.router, prefix=settings.API_V1_STR)
    app.include_router(step_router.router, prefix=settings.API_V1_STR)
    app.include_router(order_router.router, prefix=settings.API_V1_STR)
    app.include_router(admin_router.router, prefix=settings.API_V1_STR)

    logger.info(f"{settings.PROJECT_NAME} {settings.VERSION} started ({settings.ENVIRONMENT})")
    return app


app = create_app()

handler = Mangum(app)
