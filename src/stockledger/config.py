from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import logging
import os
import sys


HOME_ENV = "STOCKLEDGER_HOME"
LOG_LEVEL_ENV = "STOCKLEDGER_LOG_LEVEL"


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    db_path: Path
    logs_dir: Path
    backups_dir: Path


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def _default_base(app_name: str) -> Path:
    override = os.environ.get(HOME_ENV, "").strip()
    if override:
        return Path(override).expanduser()
    if sys.platform.startswith("win"):
        return _windows_appdata() / app_name
    if sys.platform == "darwin":
        return _mac_app_support() / app_name
    return Path.home() / f".{app_name.lower()}"


def get_app_paths(app_name: str = "StockLedger") -> AppPaths:
    base = _default_base(app_name)
    logs = base / "logs"
    backups = base / "backups"
    db = base / "inventory.db"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, db_path=db, logs_dir=logs, backups_dir=backups)


def get_log_level(default: int = logging.INFO) -> int:
    raw = os.environ.get(LOG_LEVEL_ENV, "").strip().upper()
    if not raw:
        return default
    level = logging.getLevelName(raw)
    return level if isinstance(level, int) else default
