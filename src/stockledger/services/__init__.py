from .catalog_service import CatalogService
from .ledger_service import LedgerService
from .receivables_service import ReceivablesService
from .stats_service import StatsService
from .owner_service import OwnerService
from .backup_service import BackupService
from .excel_service import ExcelService

__all__ = [
    "CatalogService",
    "LedgerService",
    "ReceivablesService",
    "StatsService",
    "OwnerService",
    "BackupService",
    "ExcelService",
]
