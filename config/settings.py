"""
Catalog service settings.

Configuration loaded from environment variables and an optional .env file.
"""
from functools import lru_cache
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Catalog service configuration."""

    # Application
    app_name: str = "catalog-service"
    revision: str = "1"
    profile: str = "local"
    app_version: str = "dev"
    host: str = "0.0.0.0"
    port: int = 8081
    request_timeout_seconds: float = 10.0
    cors_origins: str = "*"

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or text
    print_configs: bool = False

    # Database
    db_backend: str = "postgres"  # postgres or memory
    database_url: Optional[str] = None
    db_host: str = "localhost"
    db_port: int = 5432
    db_user: str = "postgres"
    db_pass: str = "postgres"
    db_name: str = "catalog"
    db_pool_min_size: int = 10
    db_pool_max_size: int = 50
    db_connect_attempts: int = 5
    db_connect_retry_seconds: float = 1.0
    db_migrate: bool = False

    # Queue
    queue_mock: bool = False
    kafka_bootstrap_servers: str = "localhost:9092"
    kafka_client_id: str = "catalog-service"
    kafka_product_topic: str = "product.exchange"
    publish_timeout_seconds: float = 5.0

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def dsn(self) -> str:
        """
        Database connection string.

        ``database_url`` wins when set; otherwise it is assembled from the
        individual ``db_*`` settings.
        """
        if self.database_url:
            return self.database_url
        return (
            f"postgresql://{self.db_user}:{self.db_pass}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @property
    def json_logs(self) -> bool:
        """Whether logs are emitted as JSON lines."""
        return self.log_format.lower() != "text"

    def get_cors_origins(self) -> List[str]:
        """
        Get list of allowed CORS origins.

        Returns:
            Origins from the comma-separated ``cors_origins`` setting.
        """
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def safe_dump(self) -> dict:
        """
        Settings as a dictionary with secrets masked, for printing at startup.

        Returns:
            Dictionary of setting names to values.
        """
        data = self.model_dump()
        if data.get("db_pass"):
            data["db_pass"] = "****"
        if data.get("database_url"):
            data["database_url"] = "****"
        return data


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings instance.
    """
    return Settings()
