from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

DEFAULT_QUEUE_FILE = "data/support-queue.json"
DEFAULT_BACKUP_DIR = "data/backups"
DEFAULT_EXPORT_DIR = "data/exports"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    app_name: str = "Support Intake Queue"
    app_env: str = "development"
    support_queue_file: str | None = None
    backup_dir: str = DEFAULT_BACKUP_DIR
    export_dir: str = DEFAULT_EXPORT_DIR

    log_level: str = "info"
    log_format: str = "auto"
    enable_request_logging: bool = True

    cors_allowed_origins: str = "http://localhost:5173"
    request_max_body_bytes: int = 1_048_576
    enforce_json_content_type: bool = True

    rate_limit_window_seconds: int = 15 * 60
    rate_limit_max_requests: int = 100
    rate_limit_support_window_seconds: int = 15 * 60
    rate_limit_support_max_requests: int = 5
    rate_limit_admin_window_seconds: int = 5 * 60
    rate_limit_admin_max_requests: int = 20
    rate_limit_health_window_seconds: int = 60
    rate_limit_health_max_requests: int = 60

    backup_interval_hours: float = 24
    data_retention_days: float = 365
    enable_automatic_backups: bool = False
    scheduled_backup_keep_count: int = 30

    admin_username: str = "admin"
    admin_password: str = field(default="admin123", repr=False)

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv()
        app_env = os.getenv("APP_ENV", "development").strip().lower() or "development"
        return cls(
            app_name=os.getenv("APP_NAME", "Support Intake Queue"),
            app_env=app_env,
            support_queue_file=os.getenv("SUPPORT_QUEUE_FILE") or None,
            backup_dir=os.getenv("SUPPORT_BACKUP_DIR", DEFAULT_BACKUP_DIR),
            export_dir=os.getenv("SUPPORT_EXPORT_DIR", DEFAULT_EXPORT_DIR),
            log_level=os.getenv("LOG_LEVEL", "info").strip().lower(),
            log_format=os.getenv("LOG_FORMAT", "auto").strip().lower(),
            enable_request_logging=_env_bool("ENABLE_REQUEST_LOGGING", True),
            cors_allowed_origins=os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:5173"),
            request_max_body_bytes=_env_int("REQUEST_MAX_BODY_BYTES", 1_048_576),
            enforce_json_content_type=_env_bool("ENFORCE_JSON_CONTENT_TYPE", True),
            rate_limit_window_seconds=_env_int("RATE_LIMIT_WINDOW_SECONDS", 15 * 60),
            rate_limit_max_requests=_env_int("RATE_LIMIT_MAX_REQUESTS", 100),
            rate_limit_support_window_seconds=_env_int("RATE_LIMIT_SUPPORT_WINDOW_SECONDS", 15 * 60),
            rate_limit_support_max_requests=_env_int("RATE_LIMIT_SUPPORT_MAX_REQUESTS", 5),
            rate_limit_admin_window_seconds=_env_int("RATE_LIMIT_ADMIN_WINDOW_SECONDS", 5 * 60),
            rate_limit_admin_max_requests=_env_int("RATE_LIMIT_ADMIN_MAX_REQUESTS", 20),
            rate_limit_health_window_seconds=_env_int("RATE_LIMIT_HEALTH_WINDOW_SECONDS", 60),
            rate_limit_health_max_requests=_env_int("RATE_LIMIT_HEALTH_MAX_REQUESTS", 60),
            backup_interval_hours=_env_float("BACKUP_INTERVAL_HOURS", 24),
            data_retention_days=_env_float("DATA_RETENTION_DAYS", 365),
            enable_automatic_backups=_env_bool("ENABLE_AUTOMATIC_BACKUPS", app_env == "production"),
            scheduled_backup_keep_count=_env_int("SCHEDULED_BACKUP_KEEP_COUNT", 30),
            admin_username=os.getenv("ADMIN_USERNAME", "admin"),
            admin_password=os.getenv("ADMIN_PASSWORD", "admin123"),
        )

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def cors_origin_list(self) -> list[str]:
        if not self.is_production:
            return ["*"]
        return [origin.strip() for origin in self.cors_allowed_origins.split(",") if origin.strip()]

    @property
    def backup_path(self) -> Path:
        return _resolve(self.backup_dir)

    @property
    def export_path(self) -> Path:
        return _resolve(self.export_dir)

    @property
    def backup_interval_seconds(self) -> float:
        return max(1.0, self.backup_interval_hours * 60 * 60)


def _resolve(raw: str) -> Path:
    path = Path(raw)
    if path.is_absolute():
        return path
    return Path.cwd() / path
