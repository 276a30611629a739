"""Global configuration

Every user-tunable value is set through the .env file and loaded here at
runtime.

Usage:
    1. Run python scripts/setup_env.py to generate the .env file
    2. Or create .env by hand (see the keys below)
"""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings - every field can be overridden from .env or the environment"""

    # ========== Data files ==========
    customers_file: str = "data/customers.md"
    document_file: str = "顧客管理データ.md"
    templates_file: str = "data/templates.md"
    backup_dir: str = "backups"
    backup_keep: int = 50

    # ========== Discord notification ==========
    discord_webhook_url: str = ""
    discord_username: str = "営業通知Bot"
    discord_timeout: float = 10.0
    notify_horizon_days: int = 1
    # "HH:MM" enables the daily check, empty keeps it on-demand only
    notify_daily_time: str = ""

    # ========== Editing ==========
    autosave_delay: float = 2.0

    # ========== Message templates ==========
    company_name: str = "サンプル株式会社"
    person_name: str = "営業太郎"
    person_name_reading: str = "えいぎょう たろう"
    material_url: str = ""
    service_url: str = ""

    # ========== Web dashboard ==========
    web_host: str = "127.0.0.1"
    web_port: int = 8080

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
