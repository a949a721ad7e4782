"""Shared configuration for all services."""
from typing import List
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Configuration
    api_host: str = "0.0.0.0"
    api_port: int = 3000
    api_debug: bool = False
    api_prefix: str = "/api/v1"
    api_version: str = "1.0.0"
    cors_allowed_origins: List[str] = ["*"]

    # Submission limits
    max_batch_size: int = 10000
    max_file_size_bytes: int = 10 * 1024 * 1024
    default_input_type: str = "email_pass"

    # Processor Configuration
    worker_pool_size: int = 5
    classify_timeout: float = 10.0
    max_retry_attempts: int = 1
    retry_base_delay: float = 0.5

    # Job lifecycle
    idle_threshold: float = 120.0  # seconds without a task completion
    sweep_interval: float = 5.0
    retention_seconds: float = 3600.0  # kept this long after a terminal state
    hard_ttl_seconds: float = 6 * 3600.0

    # Upstream leak-check service
    leak_check_api_url: str = "http://localhost:8080/v1/leaks:lookupSingle"
    leak_check_status_url: str = "http://localhost:8080/health"

    # Client polling
    api_base_url: str = "http://localhost:3000"
    poll_interval: float = 1.0
    max_network_failures: int = 5
    estimate_sample_bytes: int = 100 * 1024

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
