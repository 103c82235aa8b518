"""Config file."""
from urllib.parse import quote_plus

from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # PROJECT
    project_name: str = Field("chain-client", alias="PROJECT_NAME")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    # CHAIN
    rpc_url: str = Field("http://127.0.0.1:8545", alias="RPC_URL")
    chain_id: int | None = Field(None, alias="CHAIN_ID")
    private_key: SecretStr | None = Field(None, alias="PRIVATE_KEY")
    request_timeout: float = Field(30.0, alias="REQUEST_TIMEOUT")
    confirm_transactions: bool = Field(True, alias="CONFIRM_TRANSACTIONS")

    # LOGS
    log_poll_interval: float = Field(2.0, alias="LOG_POLL_INTERVAL")
    log_block_batch_size: int = Field(2_000, alias="LOG_BLOCK_BATCH_SIZE")
    log_queue_size: int = Field(1_000, alias="LOG_QUEUE_SIZE")

    # DATABASE
    postgres_user: str | None = Field(None, alias="POSTGRES_USER")
    postgres_password: SecretStr | None = Field(None, alias="POSTGRES_PASSWORD")
    postgres_server: str | None = Field(None, alias="POSTGRES_SERVER")
    postgres_port: int = Field(5432, alias="POSTGRES_PORT")
    postgres_db: str | None = Field(None, alias="POSTGRES_DB")
    database_url: str | None = None
    sync_database_url: str | None = None

    @field_validator("request_timeout", "log_poll_interval")
    @classmethod
    def positive_seconds(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("log_block_batch_size", "log_queue_size")
    @classmethod
    def positive_batch(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @model_validator(mode="after")
    def assemble_db_urls(self) -> "Settings":
        if not (self.postgres_user and self.postgres_password and self.postgres_server and self.postgres_db):
            return self

        user = quote_plus(self.postgres_user)
        password = quote_plus(self.postgres_password.get_secret_value())
        host = self.postgres_server
        port = self.postgres_port
        db = self.postgres_db

        if not self.database_url:
            self.database_url = f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db}"

        if not self.sync_database_url:
            self.sync_database_url = f"postgresql://{user}:{password}@{host}:{port}/{db}"

        return self

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


settings: Settings = Settings()
