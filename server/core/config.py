import os
from dataclasses import dataclass, field


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return int(value)


@dataclass
class AppSettings:
    """Global app settings."""

    app_name: str = field(default_factory=lambda: os.getenv("APP_NAME", "Student Course API"))
    app_version: str = "1.0.0"
    course_capacity: int = field(default_factory=lambda: _env_int("COURSE_CAPACITY", 3))
    seed_data: bool = field(default_factory=lambda: _env_bool("SEED_DATA", True))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    cors_origins_raw: str = field(default_factory=lambda: os.getenv("CORS_ORIGINS", "*"))
    rate_limit_max_requests: int = field(
        default_factory=lambda: _env_int("RATE_LIMIT_MAX_REQUESTS", 100)
    )
    rate_limit_window_seconds: int = field(
        default_factory=lambda: _env_int("RATE_LIMIT_WINDOW_SECONDS", 3600)
    )
    host: str = field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _env_int("PORT", 3000))

    def __post_init__(self):
        if self.course_capacity < 1:
            raise ValueError(f"COURSE_CAPACITY must be at least 1, got {self.course_capacity}")

    @property
    def cors_origins(self) -> list[str]:
        """Returns the allowed CORS origins as a list."""
        return [o.strip() for o in self.cors_origins_raw.split(",") if o.strip()]
