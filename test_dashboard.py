# test_dashboard.py
import asyncio
from datetime import date

from larder.services.dashboard import DashboardService, _month_start, default_months
from larder.services.memo import MemoizedFetch


def test_month_start_crosses_year():
    assert _month_start(date(2026, 2, 15), 0) == date(2026, 2, 1)
    assert _month_start(date(2026, 2, 15), 3) == date(2025, 11, 1)
    assert _month_start(date(2026, 1, 31), 12) == date(2025, 1, 1)


def test_default_months_are_zero_filled_oldest_first():
    months = default_months(date(2026, 2, 15))
    assert [m["key"] for m in months] == ["2025-09", "2025-10", "2025-11", "2025-12", "2026-01", "2026-02"]
    assert [m["month"] for m in months] == ["Sep", "Oct", "Nov", "Dec", "Jan", "Feb"]
    assert all(m["sales"] == 0.0 for m in months)


class BrokenSession:
    def query(self, *a, **kw):
        raise RuntimeError("database unavailable")

    def close(self):
        pass


def _service():
    memo = MemoizedFetch(ttl=30, min_interval=0, timeout=2)
    return DashboardService(memo, BrokenSession, today=lambda: date(2026, 10, 19))


def test_failed_reads_fall_back_to_defaults():
    svc = _service()

    async def run():
        return await svc.stats("bp-1"), await svc.category_stats("bp-1"), await svc.monthly_sales("bp-1")

    stats, cats, monthly = asyncio.run(run())
    assert stats == {"total_inventory_value": 0.0, "low_stock_items": 0, "monthly_sales": 0.0, "sales_growth": 0.0}
    assert len(cats) == 5 and all(c["count"] == 0 for c in cats)
    assert monthly["monthly_sales_data"][-1]["key"] == "2026-10"


def test_no_profile_skips_the_store():
    svc = _service()
    assert asyncio.run(svc.recent_sales(None)) == []
    assert svc.memo.peek("None:recentSales") is None
