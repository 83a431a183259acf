from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from pathlib import Path

log = logging.getLogger(__name__)

BACKUP_GLOB = "inventory-*.db"


class BackupService:
    def __init__(self, db_path: Path | str, backup_dir: Path | str, max_backups: int = 10):
        self.db_path = Path(db_path)
        self.backup_dir = Path(backup_dir)
        self.max_backups = int(max_backups)

    def create_backup(self) -> Path:
        if not self.db_path.exists():
            raise FileNotFoundError(f"Database not found: {self.db_path}")
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        ts = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        target = self.backup_dir / f"inventory-{ts}.db"

        src = sqlite3.connect(str(self.db_path))
        dst = sqlite3.connect(str(target))
        try:
            # online copy; safe while other connections are writing
            src.backup(dst)
        finally:
            dst.close()
            src.close()

        self._enforce_retention()
        log.info("backup_created path=%s", target)
        return target

    def list_backups(self) -> list[Path]:
        if not self.backup_dir.exists():
            return []
        return sorted(self.backup_dir.glob(BACKUP_GLOB), reverse=True)

    def restore_backup(self, backup_file: Path | str) -> Path:
        backup_path = Path(backup_file)
        if not backup_path.exists():
            raise FileNotFoundError(f"Backup not found: {backup_path}")

        src = sqlite3.connect(str(backup_path))
        dst = sqlite3.connect(str(self.db_path))
        try:
            src.backup(dst)
        finally:
            dst.close()
            src.close()
        log.warning("backup_restored source=%s", backup_path.name)
        return self.db_path

    def restore_latest_backup(self) -> Path:
        backups = self.list_backups()
        if not backups:
            raise FileNotFoundError("No backups available to restore")
        return self.restore_backup(backups[0])

    def _enforce_retention(self) -> None:
        for old in self.list_backups()[self.max_backups:]:
            old.unlink(missing_ok=True)
            log.info("backup_pruned path=%s", old.name)
