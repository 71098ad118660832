"""RECON — Central Configuration via Pydantic Settings."""

from typing import List
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── App ──
    log_level: str = "INFO"

    # ── Reporting ──
    default_date_preset: str = "last_30d"
    revenue_source: str = "pixel"  # platform | pixel | ecommerce
    report_rounding: int = 4

    # ── Sync ──
    sync_cooldown_seconds: float = 5.0  # Upstream returns partial data if hammered

    # ── Scheduler ──
    scheduler_enabled: bool = False
    sync_interval_minutes: int = 60
    scheduled_account_ids: List[str] = []

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
