from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import os
import sys


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    db_path: Path
    logs_dir: Path
    exports_dir: Path


@dataclass(frozen=True)
class AppSettings:
    # percent values
    standard_vat_rate: float = 20.0
    reduced_vat_rate: float = 10.0
    super_reduced_vat_rate: float = 1.0
    revenue_vat_rate: float = 10.0
    commission_vat_rate: float = 20.0
    default_online_commission_rate: float = 10.0
    default_days_worked: int = 26
    remote_url: str | None = None
    remote_token: str | None = None
    user_id: str = "local"
    autosave_every: int = 0

    @property
    def available_vat_rates(self) -> tuple[float, ...]:
        return (0.0, self.super_reduced_vat_rate, self.reduced_vat_rate, self.standard_vat_rate)


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "Rasyon") -> AppPaths:
    override = os.environ.get("RASYON_HOME", "").strip()
    if override:
        base = Path(override)
    elif sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"
    exports = base / "exports"
    db = base / "rasyon.db"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)
    exports.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, db_path=db, logs_dir=logs, exports_dir=exports)


def paths_for_db(db_path: Path | str) -> AppPaths:
    """Paths beside an explicit database file; nothing under the app home is touched."""
    db = Path(db_path)
    base = db.parent
    return AppPaths(base_dir=base, db_path=db, logs_dir=base / "logs", exports_dir=base / "exports")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    return float(raw) if raw else default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    return int(raw) if raw else default


def load_settings() -> AppSettings:
    """Settings with RASYON_* environment overrides."""
    d = AppSettings()
    return AppSettings(
        standard_vat_rate=_env_float("RASYON_STANDARD_VAT_RATE", d.standard_vat_rate),
        reduced_vat_rate=_env_float("RASYON_REDUCED_VAT_RATE", d.reduced_vat_rate),
        super_reduced_vat_rate=_env_float("RASYON_SUPER_REDUCED_VAT_RATE", d.super_reduced_vat_rate),
        revenue_vat_rate=_env_float("RASYON_REVENUE_VAT_RATE", d.revenue_vat_rate),
        commission_vat_rate=_env_float("RASYON_COMMISSION_VAT_RATE", d.commission_vat_rate),
        default_online_commission_rate=_env_float("RASYON_ONLINE_COMMISSION_RATE", d.default_online_commission_rate),
        default_days_worked=_env_int("RASYON_DAYS_WORKED", d.default_days_worked),
        remote_url=os.environ.get("RASYON_REMOTE_URL", "").strip() or None,
        remote_token=os.environ.get("RASYON_REMOTE_TOKEN", "").strip() or None,
        user_id=os.environ.get("RASYON_USER_ID", "").strip() or d.user_id,
        autosave_every=_env_int("RASYON_AUTOSAVE_EVERY", d.autosave_every),
    )
