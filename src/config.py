"""Application configuration loaded from environment variables."""

from functools import lru_cache
from typing import Any

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "RADAR Gateway"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Management Portal (JWT validation) ---
    management_portal_url: str = "http://managementportal-app:8080/managementportal"
    jwt_resource_name: str = "res_gateway"
    jwt_issuer: str | None = None
    jwt_key_cache_seconds: int = 3600

    # --- Kafka ---
    kafka_bootstrap_servers: str = "localhost:9092"
    kafka_admin_config: dict[str, Any] = {}  # extra librdkafka properties
    kafka_producer_config: dict[str, Any] = {}
    kafka_flush_timeout_seconds: float = 10.0

    # --- Garmin push integration ---
    garmin_enabled: bool = False
    garmin_consumer_key: str = ""
    garmin_consumer_secret: str = ""  # never expose to client
    garmin_user_collection: str = "users"
    garmin_auth_collection: str = "garmin"
    garmin_document_timeout_seconds: float = 20.0
    garmin_http_timeout_seconds: float = 30.0
    firebase_credentials_path: str | None = None  # service account JSON; ADC when unset
    firebase_project_id: str | None = None

    # --- CORS ---
    cors_origins: list[str] = ["*"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
