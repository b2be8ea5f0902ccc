"""Configuration module.

This file centralizes runtime configuration for the billing back office: store
connection, session signing, and the business thresholds (entry hour limit,
daily submission threshold) shared by the timesheet and reporting services.
Values can be provided via environment variables or a local `.env` file.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


PROJECT_ROOT = Path(__file__).resolve().parent.parent
ENV_FILE_PATH = PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    app_name: str = "LexBill Back Office"
    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    secret_key: str = "change-me-in-production"
    database_url: str = "sqlite:///./lexbill.db"
    host: str = "0.0.0.0"
    port: int = 8000
    session_max_age_hours: int = 12

    max_hours_per_entry: float = 12
    min_submission_hours: float = 8
    min_description_length: int = 10
    overdue_lookback_days: int = 30
    # Positions that see revenue and may manage service descriptions.
    admin_positions: list[str] = ["ADMIN", "PARTNER"]

    # Use an absolute path so `.env` is consistently discovered regardless of
    # the process working directory used to start uvicorn/gunicorn.
    model_config = SettingsConfigDict(env_file=ENV_FILE_PATH, env_file_encoding="utf-8")


settings = Settings()
