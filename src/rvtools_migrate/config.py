"""Configuration management - loads settings from .env and environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from .preflight import PreflightThresholds


def _load_dotenv(path: Path | None = None) -> None:
    """Minimal .env loader (avoids external dependency)."""
    candidates = [
        path,
        Path.cwd() / ".env",
        Path(__file__).resolve().parents[2] / ".env",
    ]
    env_path = None
    for candidate in candidates:
        if candidate and candidate.exists():
            env_path = candidate
            break
    if env_path is None:
        return
    for line in env_path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, _, value = line.partition("=")
        key, value = key.strip(), value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


@dataclass
class CatalogConfig:
    pricing_proxy_url: str = ""
    profiles_proxy_url: str = ""
    cache_dir: Path | None = None
    cache_ttl_hours: float = 24
    http_timeout_seconds: float = 15.0


@dataclass
class AssessmentConfig:
    snapshot_warning_days: int = 7
    snapshot_blocker_days: int = 30
    hw_version_minimum: int = 10
    hw_version_recommended: int = 14

    def thresholds(self) -> PreflightThresholds:
        return PreflightThresholds(
            snapshot_warning_days=self.snapshot_warning_days,
            snapshot_blocker_days=self.snapshot_blocker_days,
            hw_version_minimum=self.hw_version_minimum,
            hw_version_recommended=self.hw_version_recommended,
        )


@dataclass
class CostConfig:
    region: str = "us-south"
    discount: str = "onDemand"


@dataclass
class AppConfig:
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    assessment: AssessmentConfig = field(default_factory=AssessmentConfig)
    cost: CostConfig = field(default_factory=CostConfig)


def load_config(env_file: Path | None = None) -> AppConfig:
    """Load configuration from environment / .env file."""
    _load_dotenv(env_file)

    cache_dir = os.getenv("CATALOG_CACHE_DIR", "")
    catalog = CatalogConfig(
        pricing_proxy_url=os.getenv("PRICING_PROXY_URL", ""),
        profiles_proxy_url=os.getenv("PROFILES_PROXY_URL", ""),
        cache_dir=Path(cache_dir).expanduser() if cache_dir else None,
        cache_ttl_hours=float(os.getenv("CATALOG_CACHE_TTL_HOURS", "24")),
        http_timeout_seconds=float(os.getenv("HTTP_TIMEOUT_SECONDS", "15")),
    )

    assessment = AssessmentConfig(
        snapshot_warning_days=int(os.getenv("SNAPSHOT_WARNING_DAYS", "7")),
        snapshot_blocker_days=int(os.getenv("SNAPSHOT_BLOCKER_DAYS", "30")),
        hw_version_minimum=int(os.getenv("HW_VERSION_MINIMUM", "10")),
        hw_version_recommended=int(os.getenv("HW_VERSION_RECOMMENDED", "14")),
    )

    cost = CostConfig(
        region=os.getenv("DEFAULT_REGION", "us-south"),
        discount=os.getenv("DEFAULT_DISCOUNT", "onDemand"),
    )

    return AppConfig(catalog=catalog, assessment=assessment, cost=cost)
