"""
Application configuration management.
"""
import logging
import os
from decimal import Decimal
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, FrozenSet


def _default_data_dir() -> Path:
    env_dir = os.getenv("DATA_DIR")
    if env_dir:
        return Path(env_dir)
    return Path("./data")


def _default_excluded_services() -> FrozenSet[str]:
    raw = os.getenv("CAPACITY_EXCLUDED_SERVICES", "account-management")
    return frozenset(s.strip() for s in raw.split(",") if s.strip())


@dataclass
class AppConfig:
    """Application configuration with environment overrides."""

    # Paths
    data_dir: Path = field(default_factory=_default_data_dir)

    # Environment
    app_env: str = field(default_factory=lambda: os.getenv("APP_ENV", "dev"))
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())

    # Cache settings
    cache_ttl_seconds: int = field(default_factory=lambda: int(os.getenv("CACHE_TTL_SECONDS", "3600")))

    # Forecast
    forecast_months: int = field(default_factory=lambda: int(os.getenv("FORECAST_MONTHS", "6")))

    # Services never counted against delivery capacity
    excluded_services: FrozenSet[str] = field(default_factory=_default_excluded_services)

    # Reserved target key for the whole-team target
    team_total_key: str = "__team_total__"

    # Money
    money_quantum: Decimal = Decimal("0.01")

    # Thresholds (percent of target)
    capacity_busy_threshold: float = 80.0
    capacity_over_threshold: float = 95.0

    # Member role -> service used for the member's effective target
    role_services: Dict[str, str] = field(default_factory=lambda: {
        "Paid Ads Manager": "paid-advertising",
        "Social Media Manager": "social-media",
        "SEO": "seo",
        "Creative": "creative",
    })

    @property
    def processed_dir(self) -> Path:
        return self.data_dir / "processed"

    @property
    def marts_dir(self) -> Path:
        return self.data_dir / "marts"

    @property
    def is_prod(self) -> bool:
        return self.app_env.lower() == "prod"


# Global config instance
config = AppConfig()


def configure_logging(level: str = None) -> None:
    """Apply the shared log format to the root logger."""
    logging.basicConfig(
        level=getattr(logging, (level or config.log_level), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


# Table file names
TABLE_FILES = {
    "contract_line_items": "contract_line_items",
    "capacity_targets": "capacity_targets",
}

# Mart file names
MART_FILES = {
    "capacity_forecast": "capacity_forecast",
}

# Required columns (hard fail if missing)
REQUIRED_COLUMNS = {
    "contract_line_items": [
        "id",
        "client_id",
        "service",
        "billing_type",
        "monthly_value",
        "is_active",
    ],
    "capacity_targets": [
        "service",
        "monthly_target",
    ],
}

# Optional columns (soft warn if missing)
OPTIONAL_COLUMNS = {
    "contract_line_items": [
        "start_date",
        "end_date",
        "assignee_id",
    ],
}

# Formatting constants
FORMAT_CURRENCY = "£{:,.0f}"
FORMAT_CURRENCY_DECIMAL = "£{:,.2f}"
FORMAT_PERCENT = "{:.0f}%"
FORMAT_MONTH = "%b %Y"
