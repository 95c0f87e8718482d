from pydantic import Field
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application configuration loaded from environment variables / .env file."""

    app_name: str = "OSC Licensing Portal"
    app_env: str = Field(default="development", alias="APP_ENV")  # development | testing | production
    app_port: int = 8000
    frontend_url: str = Field(default="http://localhost:5173", alias="FRONTEND_URL")

    # Database (PostgreSQL in production or SQLite for local dev)
    database_url: str = Field(
        default="sqlite+aiosqlite:///./osc_portal_dev.db",
        alias="DATABASE_URL",
    )

    # Auth
    jwt_secret_key: str = Field(default="change-me", alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24, alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    bcrypt_rounds: int = Field(default=12, alias="BCRYPT_ROUNDS")

    # Feature flags (disabled modules answer 404)
    module_m01: bool = Field(default=False, alias="MODULE_M01")
    module_m02: bool = Field(default=False, alias="MODULE_M02")

    # Module 4: license catalog
    module4_base_url: str = Field(
        default="http://localhost:8004/api", alias="MODULE_4_BASE_URL",
    )
    module4_cache_ttl: int = Field(default=900, alias="MODULE_4_CACHE_TTL")  # 15 minutes
    module4_timeout: float = Field(default=10, alias="MODULE_4_TIMEOUT")

    # Module 5: PBT review queue
    module5_base_url: str | None = Field(
        default="http://localhost:8005", alias="MODULE_5_BASE_URL",
    )
    module5_timeout: float = Field(default=10, alias="MODULE_5_TIMEOUT")

    # Module 12: notifications
    module12_base_url: str | None = Field(
        default="http://localhost:8012", alias="MODULE_12_BASE_URL",
    )
    module12_timeout: float = Field(default=10, alias="MODULE_12_TIMEOUT")

    # Keyed cache store: "memory://" or a redis:// URL
    cache_url: str = Field(default="memory://", alias="CACHE_URL")

    # Document uploads
    storage_root: str = Field(default="./storage", alias="STORAGE_ROOT")
    max_upload_size: int = Field(default=10 * 1024 * 1024, alias="MAX_UPLOAD_SIZE")
    allowed_file_extensions: list[str] = Field(
        default=["pdf", "jpg", "jpeg", "png"], alias="ALLOWED_FILE_EXTENSIONS",
    )
    file_integrity_hash_enabled: bool = Field(
        default=False, alias="FILE_INTEGRITY_HASH_ENABLED",
    )

    # Antivirus scanning
    av_scan_enabled: bool = Field(default=False, alias="AV_SCAN_ENABLED")
    av_scan_queue: str = Field(default="av-scans", alias="AV_SCAN_QUEUE")
    av_scan_timeout: int = Field(default=300, alias="AV_SCAN_TIMEOUT")

    # Celery
    celery_broker_url: str = Field(
        default="redis://localhost:6379/0", alias="CELERY_BROKER_URL",
    )
    celery_result_backend: str = Field(
        default="redis://localhost:6379/1", alias="CELERY_RESULT_BACKEND",
    )

    # Audit log
    audit_enabled: bool = Field(default=True, alias="AUDIT_ENABLED")
    audit_retention_days: int = Field(default=365, alias="AUDIT_RETENTION_DAYS")
    audit_auto_cleanup: bool = Field(default=False, alias="AUDIT_AUTO_CLEANUP")
    audit_log_level: str = Field(default="INFO", alias="AUDIT_LOG_LEVEL")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "populate_by_name": True,
        "extra": "ignore",
    }

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def max_upload_size_mb(self) -> float:
        return round(self.max_upload_size / 1024 / 1024, 2)

settings = Settings()
