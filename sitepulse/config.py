"""Configuration management using Pydantic Settings."""

import os

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        # Only load .env file in development (not Lambda/production)
        env_file=".env" if os.getenv("AWS_EXECUTION_ENV") is None else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # AWS Configuration
    aws_region: str = "us-east-1"
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_session_token: str | None = None
    # LocalStack / moto endpoint shared by SQS and DynamoDB
    aws_endpoint_url: str | None = None

    @field_validator(
        "aws_access_key_id",
        "aws_secret_access_key",
        "aws_session_token",
        "aws_endpoint_url",
        mode="before",
    )
    @classmethod
    def convert_empty_string_to_none(cls, v):
        """Convert empty strings to None so boto3 falls back to its defaults."""
        if isinstance(v, str) and v.strip() == "":
            return None
        return v

    # Persistent store
    dynamodb_table_events: str = "analytics-events"

    # Durable queue
    sqs_queue_name: str = "analytics-events"
    sqs_dead_letter_queue_name: str = "analytics-events-dlq"

    # Application Configuration
    log_level: str = "INFO"
    api_title: str = "SitePulse Analytics API"
    api_version: str = "1.0.0"
    max_request_size_bytes: int = 64 * 1024  # 64KB

    # Worker
    worker_batch_size: int = 10  # SQS caps a receive at 10 messages
    worker_wait_time_seconds: int = 5  # long-poll, bounds shutdown latency
    worker_visibility_timeout_seconds: int = 30
    worker_max_attempts: int = 5
    worker_idle_backoff_seconds: float = 2.0
    retry_backoff_base_seconds: int = 2
    retry_backoff_max_seconds: int = 300
    run_worker_in_api: bool = False


# Global settings instance
settings = Settings()
