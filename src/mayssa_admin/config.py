"""Application configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Optional


def _default_data_root() -> Path:
    """Return the platform specific directory used for persistent data."""

    override = os.environ.get("MAYSSA_DATA_DIR")
    if override:
        return Path(override).expanduser()
    if os.name == "nt":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home()))
        return base / "MaisonMayssa"
    return Path.home() / ".maison_mayssa"


def _default_database_path() -> Path:
    """Resolve the database path taking overrides into account."""

    override = os.environ.get("MAYSSA_DB")
    if override:
        return Path(override).expanduser()
    return _default_data_root() / "database.sqlite3"


def _default_catalog_path() -> Optional[Path]:
    override = os.environ.get("MAYSSA_CATALOG")
    return Path(override).expanduser() if override else None


def _env_float(name: str, default: str) -> float:
    return float(os.environ.get(name, default))


@dataclass(slots=True)
class Settings:
    """Runtime configuration loaded from environment variables."""

    app_name: str = field(default_factory=lambda: os.environ.get("MAYSSA_APP_NAME", "Maison Mayssa Admin"))
    host: str = field(default_factory=lambda: os.environ.get("MAYSSA_HOST", "127.0.0.1"))
    port: int = field(default_factory=lambda: int(os.environ.get("MAYSSA_PORT", "8000")))
    reload: bool = field(default_factory=lambda: os.environ.get("MAYSSA_RELOAD", "false").lower() == "true")
    log_level: str = field(default_factory=lambda: os.environ.get("MAYSSA_LOG_LEVEL", "info"))
    database_path: Path = field(default_factory=_default_database_path)
    catalog_path: Optional[Path] = field(default_factory=_default_catalog_path)
    timezone: str = field(default_factory=lambda: os.environ.get("MAYSSA_TIMEZONE", "Europe/Paris"))

    # Delivery zone around Annecy station.
    reference_lat: float = field(default_factory=lambda: _env_float("MAYSSA_REFERENCE_LAT", "45.9017"))
    reference_lng: float = field(default_factory=lambda: _env_float("MAYSSA_REFERENCE_LNG", "6.1217"))
    delivery_radius_km: float = field(default_factory=lambda: _env_float("MAYSSA_DELIVERY_RADIUS_KM", "5"))
    delivery_fee: float = field(default_factory=lambda: _env_float("MAYSSA_DELIVERY_FEE", "5"))
    free_delivery_threshold: float = field(default_factory=lambda: _env_float("MAYSSA_FREE_DELIVERY_THRESHOLD", "45"))

    welcome_points: int = field(default_factory=lambda: int(os.environ.get("MAYSSA_WELCOME_POINTS", "15")))
    social_points: int = field(default_factory=lambda: int(os.environ.get("MAYSSA_SOCIAL_POINTS", "15")))
    # "reject" refuses a reservation larger than the remaining quantity,
    # "clamp" accepts it and floors the counter at zero.
    oversell_policy: str = field(default_factory=lambda: os.environ.get("MAYSSA_OVERSELL_POLICY", "reject").lower())

    def ensure_storage(self) -> None:
        """Ensure that the database directory exists."""

        self.database_path.parent.mkdir(parents=True, exist_ok=True)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    settings = Settings()
    settings.ensure_storage()
    return settings
