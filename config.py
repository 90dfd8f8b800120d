"""Backend settings."""

from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Service
    service_name: str = "visitor-pass-backend"
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False

    # Database (postgres:// URLs are rewritten to asyncpg)
    database_url: str = "sqlite+aiosqlite:///./visitor_pass.db"
    auto_create_tables: bool = False

    # Dashboard origins allowed by CORS
    allowed_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    # Live occupancy
    approaching_exit_minutes: int = 30
    live_poll_interval_seconds: int = 30

    # QR image rendering
    qr_box_size: int = 10
    qr_border: int = 4
    qr_error_correction: str = "M"  # L | M | Q | H

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
