import pytest

from app.features.chair_reports.domain.errors import OrderSourceError
from app.features.chair_reports.repository.item_config_repository import ItemConfigRepository
from app.features.chair_reports.repository.order_repository import OrderRepository
from app.services.redis_client import KVStoreError


@pytest.mark.asyncio
async def test_item_configs_merge_overrides_and_skip_inactive(fake_redis):
    fake_redis.put_json(
        "banquets",
        [
            {"id": "gala", "name": "Gala", "chairEmails": "a@x.org, b@x.org", "reportFrequency": "weekly"},
            {"id": "old", "name": "Old", "active": False},
            {"id": "gone", "name": "Gone", "isArchived": True},
            {"name": "No id"},
        ],
    )
    fake_redis.put_json(
        "itemcfg:gala",
        {"report_frequency": "daily", "reportFrequency": None, "publishStart": "2025-01-01T00:00:00Z"},
    )
    repo = ItemConfigRepository(store=fake_redis)

    configs = await repo.get_item_configs("banquet")

    assert [c.id for c in configs] == ["gala"]
    gala = configs[0]
    assert gala.kind == "banquet"
    assert gala.chair_emails == ["a@x.org", "b@x.org"]
    assert gala.report_frequency_raw == "daily"
    assert gala.publish_start.year == 2025


@pytest.mark.asyncio
async def test_item_configs_raise_when_store_unavailable(fake_redis):
    fake_redis.fail_strict = True
    repo = ItemConfigRepository(store=fake_redis)

    with pytest.raises(KVStoreError):
        await repo.get_item_configs("addon")


@pytest.mark.asyncio
async def test_unknown_kind_is_rejected(fake_redis):
    with pytest.raises(ValueError):
        await ItemConfigRepository(store=fake_redis).get_item_configs("raffle")


@pytest.mark.asyncio
async def test_period_state_is_keyed_by_item_and_frequency(fake_redis):
    repo = ItemConfigRepository(store=fake_redis)

    await repo.set_period_state("gala", "monthly", "2025-03")

    assert fake_redis.store["itemcfg:gala:last_period:monthly"] == "2025-03"
    assert await repo.get_period_state("gala", "monthly") == "2025-03"
    assert await repo.get_period_state("gala", "weekly") is None


@pytest.mark.asyncio
async def test_claim_dispatch_marker_succeeds_once(fake_redis):
    repo = ItemConfigRepository(store=fake_redis)

    assert await repo.claim_dispatch_marker("order-1") is True
    assert await repo.claim_dispatch_marker("order-1") is False
    assert await repo.get_dispatch_marker("order-1")


@pytest.mark.asyncio
async def test_chair_emails_for_unknown_item_are_empty(fake_redis):
    fake_redis.put_json("products", [])
    assert await ItemConfigRepository(store=fake_redis).get_chair_emails("missing") == []


@pytest.mark.asyncio
async def test_load_snapshot_parses_orders(fake_redis, no_sleep):
    fake_redis.add_order({"id": "o1", "created": "2025-03-02T10:00:00Z", "lines": []})
    fake_redis.add_order({"id": "o2", "created": 1741000000000, "lines": []})

    snapshot = await OrderRepository(store=fake_redis, sleep=no_sleep).load_snapshot()

    assert sorted(o.id for o in snapshot.orders) == ["o1", "o2"]
    assert all(o.created is not None for o in snapshot.orders)
    assert no_sleep.calls == []


@pytest.mark.asyncio
async def test_load_snapshot_retries_until_documents_resolve(fake_redis):
    fake_redis.sets["orders:index"] = {"o1"}
    sleeps = []

    async def _sleep(seconds):
        sleeps.append(seconds)
        fake_redis.put_json("order:o1", {"id": "o1", "lines": []})

    repo = OrderRepository(store=fake_redis, sleep=_sleep)
    snapshot = await repo.load_snapshot(retries=4, delay_s=0.5)

    assert [o.id for o in snapshot.orders] == ["o1"]
    assert sleeps == [0.5]


@pytest.mark.asyncio
async def test_load_snapshot_gives_up_after_retries(fake_redis, no_sleep):
    fake_redis.sets["orders:index"] = {"ghost"}

    snapshot = await OrderRepository(store=fake_redis, sleep=no_sleep).load_snapshot(
        retries=3, delay_s=0.1
    )

    assert snapshot.orders == []
    assert no_sleep.calls == [0.1, 0.1]


@pytest.mark.asyncio
async def test_order_index_failure_raises_order_source_error(fake_redis):
    fake_redis.fail_strict = True

    with pytest.raises(OrderSourceError):
        await OrderRepository(store=fake_redis).load_snapshot()
