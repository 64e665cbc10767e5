"""
Tests for the dashboard statistics cache.
"""
import pytest

from app.models.order import OrderStatus
from app.services.clock import TimezoneService
from app.services.state_machine import approve
from app.services.stats import DashboardStatsCache

from conftest import make_order


@pytest.fixture
def stats_cache():
    return DashboardStatsCache(TimezoneService("Asia/Shanghai"))


@pytest.mark.asyncio
async def test_stats_cached_until_invalidated(db, stats_cache, employee):
    await make_order(db, employee, number="#s1")

    first = await stats_cache.get(db)
    assert first.pending_orders == 1
    assert stats_cache.is_cached

    await make_order(db, employee, number="#s2")
    # No event yet, so the cached counts are served
    assert (await stats_cache.get(db)).pending_orders == 1

    stats_cache.invalidate()
    assert (await stats_cache.get(db)).pending_orders == 2


@pytest.mark.asyncio
async def test_invalidation_during_compute_is_not_cached(
    db, other_session, stats_cache, pending_order, monkeypatch
):
    """
    An order reviewed in another request while the counts are being
    computed must not leave the pre-review counts in the cache.
    """
    real_execute = db.execute
    reviewed = []

    async def execute(statement, *args, **kwargs):
        result = await real_execute(statement, *args, **kwargs)
        if not reviewed and "orders.status" in str(statement):
            reviewed.append(await approve(other_session, pending_order.id))
            stats_cache.invalidate()
        return result

    monkeypatch.setattr(db, "execute", execute)

    during = await stats_cache.get(db)
    assert during.pending_orders == 1
    assert reviewed[0].status == OrderStatus.APPROVED.value
    assert not stats_cache.is_cached

    after = await stats_cache.get(db)
    assert after.pending_orders == 0
    assert stats_cache.is_cached
