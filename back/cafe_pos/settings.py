from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    """
    App configuration.

    Values come from the environment, then `config.env` / `.env` in the
    repository root or the current directory.
    """

    model_config = SettingsConfigDict(
        env_file=(
            str(_PROJECT_ROOT / "config.env"),
            str(_PROJECT_ROOT / ".env"),
            "config.env",
            ".env",
        ),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    db_host: str = Field(default="localhost", validation_alias="DB_HOST")
    db_port: int = Field(default=5432, validation_alias="DB_PORT")
    db_user: str = Field(default="pos", validation_alias="DB_USER")
    db_password: str = Field(default="pos", validation_alias="DB_PASSWORD")
    db_name: str = Field(default="pos", validation_alias="DB_NAME")
    # Full SQLAlchemy URL; takes precedence over the DB_* parts (e.g. sqlite:///./pos.db)
    database_url_override: str | None = Field(default=None, validation_alias="DATABASE_URL")
    # Postgres only. Expired statements surface as 503 so clients can retry.
    db_statement_timeout_ms: int = Field(default=5000, validation_alias="DB_STATEMENT_TIMEOUT_MS")
    db_pool_timeout: int = Field(default=10, validation_alias="DB_POOL_TIMEOUT")

    # Empty string disables the notification channel
    redis_url: str = Field(default="redis://localhost:6379", validation_alias="REDIS_URL")

    secret_key: str = Field(default="CHANGE_THIS_IN_PRODUCTION", validation_alias="SECRET_KEY")
    algorithm: str = Field(default="HS256", validation_alias="ALGORITHM")
    access_token_expire_minutes: int = Field(default=480, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    cors_origins: str = Field(
        default="http://localhost:4200",
        validation_alias="CORS_ORIGINS"
    )

    receipt_prefix: str = Field(default="RCPT", validation_alias="RECEIPT_PREFIX")
    currency_symbol: str = Field(default="", validation_alias="CURRENCY_SYMBOL")

    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        # psycopg (v3) driver
        return (
            f"postgresql+psycopg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


settings = Settings()
