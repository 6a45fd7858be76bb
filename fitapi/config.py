from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="fitapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    PROJECT_NAME: str = "Fit Rewards API"
    VERSION: str = "0.1.0"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./fitapi.db"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Security (tokens are issued by the auth service, we only verify them)
    SECRET_KEY: str = "change-me"
    JWT_ALGORITHM: str = "HS256"

    # Step validation
    MAX_STEPS_PER_DAY: int = 100000
    MIN_METERS_PER_STEP: float = 0.5
    MAX_METERS_PER_STEP: float = 2.0
    # settings store 값이 우선, 1 이하면 anomaly score 계산이 불가능
    SUSPICIOUS_STEP_MULTIPLIER: float = Field(1.5, gt=1.0)

    # Step rewards
    STEPS_PER_COIN: int = 100
    MAX_COINS_PER_SUBMISSION: int = 100  # 일일 한도가 아닌 제출 건당 한도

    # Orders
    ORDER_CODE_PREFIX: str = "ORD"
    MAX_PAGE_SIZE: int = 100

    # Misc
    TIMEZONE: str = "Asia/Seoul"
    ALLOWED_ORIGINS: Optional[str] = "*"


settings = Settings()
