"""
Configuration settings for the Car Rental Backend.

This module handles application configuration using Pydantic settings.
"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = "Car Rental Backend"
    api_version: str = "v1"
    debug: bool = True
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    # Database Configuration
    database_url: str = "sqlite+aiosqlite:///./car_rental.db"
    db_echo: bool = False
    db_pool_size: int = 20  # ignored for SQLite
    db_max_overflow: int = 10

    # Scheduling
    timezone: str = "Asia/Baku"
    terminal_reservations_block: bool = False  # COMPLETED/CANCELED still block new bookings
    turnover_guard_minutes: int = 0

    # Sessions
    session_backend: str = "memory"  # "memory" or "redis"
    session_ttl_minutes: int = 12 * 60

    # Redis Configuration
    redis_url: str = "redis://localhost:6379/0"
    redis_decode_responses: bool = True

    # Telegram notifications (disabled when token or chat id is empty)
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    telegram_api_base: str = "https://api.telegram.org"
    telegram_timeout_seconds: float = 10.0

    # Notification worker
    notification_queue_size: int = 100
    notifier_failure_threshold: int = 5
    notifier_reset_timeout: int = 60

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
