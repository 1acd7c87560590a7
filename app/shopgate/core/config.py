from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    APP_NAME: str = "SHOPGATE"
    API_PREFIX: str = "/shopgate"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = "sqlite+pysqlite:///./shopgate.db"
    TRANSACTION_TIMEOUT_MS: int = 5000

    SECRET_KEY: str = "change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Bootstrap platform administrator created by scripts/seed.py
    SUPERADMIN_EMAIL: str = "superadmin@example.com"
    SUPERADMIN_NAME: str = "Super Admin"
    SUPERADMIN_PASSWORD: str = "change-me"

    APPROVALS_PAGE_SIZE_MAX: int = 200
    AUDIT_PAGE_SIZE_MAX: int = 500
    METRICS_ENABLED: bool = True


settings = Settings()
