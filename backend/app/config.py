import os
from dataclasses import dataclass, field
from functools import lru_cache

TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in TRUTHY


def _split_origins(raw: str) -> list[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@dataclass
class Settings:
    """Application settings loaded from environment variables with safe defaults."""

    app_name: str = "Club Scoring API"
    database_url: str | None = None
    cors_origins: list[str] = field(
        default_factory=lambda: ["http://localhost:3000", "http://127.0.0.1:3000"]
    )
    auto_seed_on_empty: bool = True
    log_level: str = "INFO"
    persist_automatic_points: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            app_name=os.getenv("APP_NAME", defaults.app_name),
            database_url=os.getenv("DATABASE_URL"),
            cors_origins=_split_origins(os.getenv("CORS_ORIGINS", ",".join(defaults.cors_origins))),
            auto_seed_on_empty=_env_flag("AUTO_SEED_ON_EMPTY", "true"),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
            persist_automatic_points=_env_flag("PERSIST_AUTOMATIC_POINTS", "true"),
        )


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()
