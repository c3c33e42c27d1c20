from typing import Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):

    ENV: str = "dev"                # "dev" / "staging" / "prod"
    SERVICE_NAME: str = "vybe-auth"
    API_PREFIX: str = "/api/v1"
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    RELOAD: bool = False

    DATABASE_URL: str = "postgresql+asyncpg://localhost:5432/vybe"
    REDIS_URL: str = "redis://localhost:6379/0"

    JWT_ACCESS_SECRET: str
    JWT_REFRESH_SECRET: str
    JWT_ALGO: str = "HS256"
    JWT_ACCESS_EXPIRATION: str = "15m"
    JWT_REFRESH_EXPIRATION: str = "30d"
    TOKEN_HASH_ALGO: str = "sha256"

    MAX_SESSIONS_PER_ACCOUNT: int = 5

    VERIFICATION_CODE_TTL_SECONDS: int = 300
    VERIFICATION_MAX_SENDS: int = 5
    VERIFICATION_SEND_WINDOW_SECONDS: int = 3600

    RATE_LIMIT_FAIL_OPEN: bool = True
    RATE_LIMIT_TIMEOUT_SECONDS: float = 0.5
    RATE_LIMIT_MAX: int = 100
    RATE_LIMIT_WINDOW: int = 60
    AUTH_RATE_LIMIT: int = 10
    AUTH_RATE_WINDOW: int = 60
    SMS_RATE_LIMIT: int = 3
    SMS_RATE_WINDOW: int = 300

    GOOGLE_CLIENT_ID: Optional[str] = None
    APPLE_CLIENT_ID: Optional[str] = None

    SESSION_SWEEP_INTERVAL_SECONDS: int = 3600
    ENABLE_METRICS: bool = False

    @field_validator("JWT_ACCESS_SECRET", "JWT_REFRESH_SECRET")
    @classmethod
    def _secret_length(cls, value: str) -> str:
        if len(value) < 32:
            raise ValueError("JWT secrets must be at least 32 characters")
        return value

    class Config:
        env_file = ".env"
        extra = "ignore"


config_settings = Settings()
