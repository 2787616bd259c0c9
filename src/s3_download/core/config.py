"""Configuration management for s3-download."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    log_level: str = "INFO"
    otel_enabled: bool = False
    otel_service_name: str = "s3-download"
    otel_exporter_endpoint: str = "http://localhost:4317"

    region_name: str = "us-east-1"

    # Retry behaviour for delete, copy, ACL and listing-page requests
    retry_limit: int = 2
    throttle_delay_seconds: float = 0.4
    list_retry_delay_seconds: float = 0.1
    list_page_size: int = 1000

    default_encoding: str = "iso-8859-1"

    model_config = {
        "env_prefix": "S3_DOWNLOAD_",
        "case_sensitive": False,
    }


settings = Settings()
