import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        jwt_secret: str,
        jwt_algorithm: str,
        jwt_expires_minutes: int,
        environment: str,
        log_level: str,
        cors_origins: list[str],
        seed_defaults: bool,
        timezone: str,
    ) -> None:
        self.database_url = database_url
        self.jwt_secret = jwt_secret
        self.jwt_algorithm = jwt_algorithm
        self.jwt_expires_minutes = jwt_expires_minutes
        self.environment = environment
        self.log_level = log_level
        self.cors_origins = cors_origins
        self.seed_defaults = seed_defaults
        self.timezone = timezone

    @property
    def expose_error_details(self) -> bool:
        return self.environment == "development"


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("MOMENTUM_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "momentum.db"
    database_url = os.getenv("MOMENTUM_DATABASE_URL", f"sqlite:///{default_db}")
    jwt_secret = os.getenv(
        "MOMENTUM_JWT_SECRET",
        "6f1d0c8e5b0a4d7f9a3e2c1b8d7f6a5e4c3b2a19f8e7d6c5b4a3928170f6e5d4",
    )
    jwt_algorithm = os.getenv("MOMENTUM_JWT_ALGORITHM", "HS256")
    jwt_expires_minutes = int(os.getenv("MOMENTUM_JWT_EXPIRES_MINUTES", "10080"))
    environment = os.getenv("MOMENTUM_ENV", "production").strip().lower()
    log_level = os.getenv("MOMENTUM_LOG_LEVEL", "INFO").upper()
    cors_origins = [
        origin.strip()
        for origin in os.getenv("MOMENTUM_CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]
    seed_defaults = _env_flag("MOMENTUM_SEED_DEFAULTS", "1")
    timezone = os.getenv("MOMENTUM_TIMEZONE", "UTC")
    return Settings(
        database_url=database_url,
        jwt_secret=jwt_secret,
        jwt_algorithm=jwt_algorithm,
        jwt_expires_minutes=jwt_expires_minutes,
        environment=environment,
        log_level=log_level,
        cors_origins=cors_origins,
        seed_defaults=seed_defaults,
        timezone=timezone,
    )
