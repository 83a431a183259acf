from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from stockledger.repositories.sqlite_repo import SqliteRepository
from stockledger.services.backup_service import BackupService
from stockledger.services.catalog_service import CatalogService
from stockledger.services.excel_service import ExcelService
from stockledger.services.ledger_service import LedgerService
from stockledger.services.owner_service import OwnerService
from stockledger.services.receivables_service import ReceivablesService
from stockledger.services.stats_service import StatsService


@dataclass(frozen=True)
class AppContainer:
    repo: SqliteRepository
    owners: OwnerService
    catalog: CatalogService
    ledger: LedgerService
    receivables: ReceivablesService
    stats: StatsService
    backup: BackupService
    excel: ExcelService


def build_container(
    db_path: Path | str,
    backup_dir: Path | str | None = None,
    clock: Callable[[], datetime] | None = None,
) -> AppContainer:
    repo = SqliteRepository(db_path)
    repo.init_db()

    owners = OwnerService(repo)
    catalog = CatalogService(repo)
    ledger = LedgerService(repo, clock=clock)
    receivables = ReceivablesService(repo)
    stats = StatsService(repo, clock=clock)
    backup = BackupService(db_path, backup_dir or Path(db_path).parent / "backups")
    excel = ExcelService(catalog, ledger)

    return AppContainer(
        repo=repo,
        owners=owners,
        catalog=catalog,
        ledger=ledger,
        receivables=receivables,
        stats=stats,
        backup=backup,
        excel=excel,
    )
