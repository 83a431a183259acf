"""Profit rollups recomputed from the ledger on every call.

Nothing is cached: each call reads the EXIT rows for one owner and folds them
with the per-row formulas in ``stockledger.domain.valuation``.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Callable, Optional

from stockledger.domain.errors import ValidationError
from stockledger.domain.models import (
    PaymentStatus,
    PeriodStat,
    ProductStat,
    ProfitSummary,
    SalesSummary,
    money,
)
from stockledger.domain.valuation import pending_share, realized_share
from stockledger.services.ledger_service import utc_now

PERIODS = ("day", "week", "month", "quarter", "custom")


def _shift_month(first: date, months_back: int) -> date:
    idx = first.year * 12 + (first.month - 1) - months_back
    return date(idx // 12, idx % 12 + 1, 1)


def bucket_label(period: str, timestamp: str) -> str:
    moment = datetime.fromisoformat(timestamp)
    if period in ("day", "custom"):
        return moment.strftime("%Y-%m-%d")
    if period == "week":
        return moment.strftime("%Y-%W")
    if period == "quarter":
        return f"{moment.year}-Q{(moment.month + 2) // 3}"
    return moment.strftime("%Y-%m")


def window_start(period: str, range_: int, today: date) -> date:
    """First day of the oldest of ``range_`` buckets ending with the current one."""
    if period == "day":
        return today - timedelta(days=range_ - 1)
    if period == "week":
        monday = today - timedelta(days=today.weekday())
        return monday - timedelta(weeks=range_ - 1)
    if period == "quarter":
        quarter_first = date(today.year, ((today.month - 1) // 3) * 3 + 1, 1)
        return _shift_month(quarter_first, (range_ - 1) * 3)
    return _shift_month(today.replace(day=1), range_ - 1)


def _parse_day(value, field: str) -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD).") from e


class StatsService:
    def __init__(self, repo, clock: Callable[[], datetime] | None = None):
        self.repo = repo
        self.clock = clock or utc_now

    def get_stats(self, owner_id: int) -> ProfitSummary:
        realized = 0.0
        pending = 0.0
        for row in self.repo.list_exit_rows(int(owner_id)):
            _pid, _name, _sku, qty, unit_cost, cost, status, paid, _ts = row
            realized += realized_share(unit_cost, cost, paid)
            if status == PaymentStatus.PENDING.value:
                pending += pending_share(unit_cost, cost, qty, paid)
        return ProfitSummary(realized_profit=money(realized), pending_profit=money(pending))

    def get_product_stats(self, owner_id: int) -> list[ProductStat]:
        grouped: dict[int, list] = {}
        for row in self.repo.list_exit_rows(int(owner_id)):
            pid, name, sku, qty, unit_cost, cost, _status, paid, _ts = row
            acc = grouped.setdefault(pid, [name, sku, 0, 0.0])
            acc[2] += int(qty)
            acc[3] += realized_share(unit_cost, cost, paid)

        stats = [
            ProductStat(name=name, sku=sku, total_sold=sold, profit=money(profit))
            for name, sku, sold, profit in grouped.values()
        ]
        stats.sort(key=lambda s: (-s.profit, s.name))
        return stats

    def get_monthly_stats(self, owner_id: int, months: int = 12, as_of: Optional[datetime] = None) -> list[PeriodStat]:
        return self.get_profit_evolution(owner_id, period="month", range_=months, as_of=as_of)

    def get_profit_evolution(
        self,
        owner_id: int,
        period: str = "month",
        range_: int = 12,
        start_date=None,
        end_date=None,
        as_of: Optional[datetime] = None,
    ) -> list[PeriodStat]:
        """
        Realized profit per bucket, oldest first. Only buckets with sales are
        returned. ``custom`` uses daily buckets between two inclusive dates.
        """
        period = (period or "month").strip().lower()
        if period not in PERIODS:
            raise ValidationError(f"Unknown period '{period}'. Use one of: {', '.join(PERIODS)}.")

        if period == "custom":
            if start_date is None or end_date is None:
                raise ValidationError("Custom period requires start and end dates.")
            start = _parse_day(start_date, "start_date")
            end = _parse_day(end_date, "end_date")
            if end < start:
                raise ValidationError("End date must not be before start date.")
            start_iso = f"{start.isoformat()} 00:00:00"
            end_iso = f"{end.isoformat()} 23:59:59"
        else:
            if int(range_) < 1:
                raise ValidationError("Range must be >= 1.")
            today = (as_of or self.clock()).date()
            start_iso = f"{window_start(period, int(range_), today).isoformat()} 00:00:00"
            end_iso = None

        buckets: dict[str, float] = {}
        for row in self.repo.list_exit_rows(int(owner_id), start_iso=start_iso, end_iso=end_iso):
            _pid, _name, _sku, _qty, unit_cost, cost, _status, paid, ts = row
            label = bucket_label(period, ts)
            buckets[label] = buckets.get(label, 0.0) + realized_share(unit_cost, cost, paid)

        return [PeriodStat(period=label, profit=money(profit)) for label, profit in sorted(buckets.items())]

    def get_sales_summary(self, owner_id: int) -> SalesSummary:
        revenue, units, collected, spent = self.repo.sales_summary(int(owner_id))
        return SalesSummary(
            revenue=money(revenue),
            units_sold=int(units),
            collected=money(collected),
            purchases_spent=money(spent),
        )
