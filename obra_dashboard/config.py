"""
Application configuration management.
"""
import os
from datetime import date
from pathlib import Path
from dataclasses import dataclass, field


def _default_data_dir() -> Path:
    env_dir = os.getenv("DATA_DIR")
    if env_dir:
        return Path(env_dir)
    return Path("./data")


@dataclass
class AppConfig:
    """Application configuration with environment overrides."""

    # Paths
    data_dir: Path = field(default_factory=_default_data_dir)

    # Environment
    app_env: str = field(default_factory=lambda: os.getenv("APP_ENV", "dev"))

    # Cache settings
    cache_default_ttl_seconds: int = field(default_factory=lambda: int(os.getenv("CACHE_DEFAULT_TTL_SECONDS", "86400")))
    reports_cache_ttl_seconds: int = field(default_factory=lambda: int(os.getenv("REPORTS_CACHE_TTL_SECONDS", "3600")))
    count_cache_ttl_seconds: int = field(default_factory=lambda: int(os.getenv("COUNT_CACHE_TTL_SECONDS", "300")))
    max_stale_seconds: int = 7 * 24 * 60 * 60  # served stale at most one week

    # Pagination / filters
    default_page_size: int = field(default_factory=lambda: int(os.getenv("PAGE_SIZE", "10")))
    default_period: str = "30"

    # Analysis thresholds
    min_forecast_points: int = 5
    min_correlation_reports: int = 5
    default_forecast_days: int = 30

    @property
    def cache_dir(self) -> Path:
        return self.data_dir / "cache"

    @property
    def store_path(self) -> Path:
        env_path = os.getenv("STORE_PATH")
        return Path(env_path) if env_path else self.data_dir / "reports.json"

    @property
    def users_path(self) -> Path:
        env_path = os.getenv("USERS_PATH")
        return Path(env_path) if env_path else self.data_dir / "users.json"


# Global config instance
config = AppConfig()


# Remote collections
REPORTS_COLLECTION = "Reportes"
ACTIVITIES_COLLECTION = "actividades"
LABOR_COLLECTION = "mano_obra"

# Hourly labor cost per worker category (soles)
CATEGORY_RATES = {
    "OPERARIO": 23.00,
    "OFICIAL": 18.09,
    "PEON": 16.38,
}
FALLBACK_RATE = 18.00

# Period selector: value -> label. Numeric values are "last N days", "0" is all time.
PREDEFINED_PERIODS = {
    "custom": "Personalizado",
    "30": "Últimos 30 días",
    "90": "Últimos 90 días",
    "180": "Últimos 180 días",
    "365": "Último año",
    "0": "Todo el tiempo",
}
CUSTOM_PERIOD = "custom"
ALL_TIME_PERIOD = "0"
ALL_TIME_START = date(2000, 1, 1)

# Fields every report document must carry
REQUIRED_REPORT_FIELDS = ["fecha", "elaboradoPor", "subcontratistaBloque"]
OPTIONAL_REPORT_FIELDS = ["revisadoPor", "timestamp", "usuarioEmail", "usuarioUID"]

FETCH_ERROR_MESSAGE = "Error al cargar datos. Por favor intente más tarde."
UNSPECIFIED_CONTRACTOR = "Sin especificar"

# Formatting constants
FORMAT_CURRENCY = "S/ {:,.2f}"
FORMAT_HOURS = "{:,.1f}"
FORMAT_PERCENT = "{:.1f}%"
FORMAT_COUNT = "{:,}"
