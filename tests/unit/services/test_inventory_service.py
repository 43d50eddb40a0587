# tests/unit/services/test_inventory_service.py
import asyncio
import gc
import logging
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from inventory_tracker.core.enums import ChangeKind
from inventory_tracker.core.exceptions import DuplicateKeyError, ImmutableFieldError, ProductNotFoundError
from inventory_tracker.schemas.product import ProductRead
from inventory_tracker.services.change_bus import ChangeBus
from inventory_tracker.services.inventory_service import InventoryService

now = datetime(2026, 1, 1, 12, 0, 0)
sample_read_data = ProductRead(
    name="Wireless Mouse",
    category="Electronics",
    quantity=50,
    price=Decimal("29.99"),
    created_at=now,
    updated_at=now,
)


# --- Full lifecycle against a real store ---

@pytest.mark.asyncio
async def test_wireless_mouse_lifecycle(inventory_service, bus, sample_product_data):
    subscription = bus.subscribe()

    created = await inventory_service.create_product(sample_product_data)
    assert created.created_at == created.updated_at

    updated = await inventory_service.update_product("Wireless Mouse", {"quantity": 35, "price": 24.99})
    assert updated.category == "Electronics"
    assert updated.quantity == 35
    assert updated.price == Decimal("24.99")
    assert updated.updated_at > updated.created_at

    confirmation = await inventory_service.delete_product("Wireless Mouse")
    assert confirmation == {"name": "Wireless Mouse", "deleted": True}

    with pytest.raises(ProductNotFoundError):
        await inventory_service.get_product("Wireless Mouse")

    events = subscription.drain()
    assert [e.kind for e in events] == [ChangeKind.CREATED, ChangeKind.UPDATED, ChangeKind.DELETED]
    assert events[0].payload == created.model_dump(mode="json")
    assert events[1].payload == updated.model_dump(mode="json")
    assert events[2].payload == {"name": "Wireless Mouse"}
    assert all(e.name == "Wireless Mouse" for e in events)


@pytest.mark.asyncio
async def test_event_payload_matches_store_after_commit(inventory_service, bus, sample_product_data):
    subscription = bus.subscribe()

    await inventory_service.create_product(sample_product_data)
    event = await asyncio.wait_for(subscription.get(), timeout=1)

    stored = await inventory_service.get_product("Wireless Mouse")
    assert event.payload == stored.model_dump(mode="json")


@pytest.mark.asyncio
async def test_duplicate_create_publishes_nothing(inventory_service, bus, sample_product_data):
    await inventory_service.create_product(sample_product_data)
    subscription = bus.subscribe()

    with pytest.raises(DuplicateKeyError):
        await inventory_service.create_product(sample_product_data)

    assert subscription.drain() == []


@pytest.mark.asyncio
async def test_update_missing_publishes_nothing(inventory_service, store, bus):
    subscription = bus.subscribe()

    with pytest.raises(ProductNotFoundError):
        await inventory_service.update_product("missing-name", {"quantity": 3})

    assert subscription.drain() == []
    assert await store.count() == 0


@pytest.mark.asyncio
async def test_rejected_rename_publishes_nothing(inventory_service, bus, sample_product_data):
    await inventory_service.create_product(sample_product_data)
    subscription = bus.subscribe()

    with pytest.raises(ImmutableFieldError):
        await inventory_service.update_product("Wireless Mouse", {"name": "Mouse"})

    assert subscription.drain() == []


@pytest.mark.asyncio
async def test_double_delete(inventory_service, bus, sample_product_data):
    await inventory_service.create_product(sample_product_data)
    subscription = bus.subscribe()

    assert (await inventory_service.delete_product("Wireless Mouse"))["deleted"] is True
    with pytest.raises(ProductNotFoundError):
        await inventory_service.delete_product("Wireless Mouse")

    events = subscription.drain()
    assert len(events) == 1
    assert events[0].kind == ChangeKind.DELETED


@pytest.mark.asyncio
async def test_concurrent_creates_publish_one_event(inventory_service, bus, sample_product_data):
    subscription = bus.subscribe()

    results = await asyncio.gather(
        *[inventory_service.create_product(sample_product_data) for _ in range(5)],
        return_exceptions=True
    )

    assert sum(isinstance(r, ProductRead) for r in results) == 1
    assert sum(isinstance(r, DuplicateKeyError) for r in results) == 4
    events = subscription.drain()
    assert len(events) == 1
    assert events[0].kind == ChangeKind.CREATED


@pytest.mark.asyncio
async def test_concurrent_updates_publish_in_commit_order(inventory_service, bus, sample_product_data):
    await inventory_service.create_product(sample_product_data)
    subscription = bus.subscribe()

    await asyncio.gather(*[
        inventory_service.update_product("Wireless Mouse", {"quantity": q})
        for q in range(10)
    ])

    events = subscription.drain()
    assert len(events) == 10
    stamps = [e.payload["updated_at"] for e in events]
    assert stamps == sorted(stamps)
    assert len(set(stamps)) == 10

    # The last event describes the state the store ended in
    final = await inventory_service.get_product("Wireless Mouse")
    assert events[-1].payload == final.model_dump(mode="json")


@pytest.mark.asyncio
async def test_interleaved_names_keep_per_name_order(inventory_service, bus):
    subscription = bus.subscribe()
    names = ["Keyboard", "Monitor", "Webcam"]

    async def lifecycle(name):
        await inventory_service.create_product({"name": name, "quantity": 1, "price": 10})
        await inventory_service.update_product(name, {"quantity": 2})
        await inventory_service.delete_product(name)

    await asyncio.gather(*[lifecycle(name) for name in names])

    events = subscription.drain()
    assert len(events) == 9
    for name in names:
        kinds = [e.kind for e in events if e.name == name]
        assert kinds == [ChangeKind.CREATED, ChangeKind.UPDATED, ChangeKind.DELETED]


@pytest.mark.asyncio
async def test_list_products_reads_through(inventory_service):
    await inventory_service.create_product({"name": "Stapler", "category": "Office", "quantity": 1, "price": 3})
    await inventory_service.create_product({"name": "Webcam", "category": "Electronics", "quantity": 1, "price": 40})

    result = await inventory_service.list_products(category="Office")

    assert result["total"] == 1
    assert result["items"][0].name == "Stapler"


# --- Cancellation ---

@pytest.mark.asyncio
async def test_cancelled_create_still_commits_and_publishes(inventory_service, bus, sample_product_data):
    subscription = bus.subscribe()

    task = asyncio.create_task(inventory_service.create_product(sample_product_data))
    await asyncio.sleep(0)  # let the mutation start
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    event = await asyncio.wait_for(subscription.get(), timeout=5)
    assert event.kind == ChangeKind.CREATED
    assert event.name == "Wireless Mouse"
    assert (await inventory_service.get_product("Wireless Mouse")).quantity == 50
    assert subscription.drain() == []


@pytest.mark.asyncio
async def test_cancelled_failing_create_logs_its_error(inventory_service, bus, sample_product_data, caplog):
    await inventory_service.create_product(sample_product_data)
    subscription = bus.subscribe()

    with caplog.at_level(logging.WARNING):
        task = asyncio.create_task(inventory_service.create_product(sample_product_data))
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        # Waits on the name's lock until the abandoned create has finished
        await inventory_service.update_product("Wireless Mouse", {"quantity": 7})
        gc.collect()

    assert [e.kind for e in subscription.drain()] == [ChangeKind.UPDATED]
    store_warnings = [
        r.getMessage() for r in caplog.records
        if r.name == "inventory_tracker.services.product_store"
    ]
    assert any("already exists" in message for message in store_warnings)
    assert not any("never retrieved" in r.getMessage() for r in caplog.records)


# --- Collaboration with mocked dependencies ---

@pytest.mark.asyncio
async def test_failed_store_call_never_publishes():
    mock_store = AsyncMock()
    mock_store.create.side_effect = DuplicateKeyError("Wireless Mouse")
    mock_bus = MagicMock(spec=ChangeBus)

    service = InventoryService(mock_store, mock_bus)

    with pytest.raises(DuplicateKeyError):
        await service.create_product({"name": "Wireless Mouse"})

    mock_bus.publish.assert_not_called()


@pytest.mark.asyncio
async def test_publish_happens_through_commit_hook():
    mock_bus = MagicMock(spec=ChangeBus)

    async def fake_create(fields, on_commit=None):
        # The service must not publish before the store reports the commit
        mock_bus.publish.assert_not_called()
        on_commit(sample_read_data)
        return sample_read_data

    mock_store = AsyncMock()
    mock_store.create.side_effect = fake_create

    service = InventoryService(mock_store, mock_bus)
    result = await service.create_product({"name": "Wireless Mouse"})

    assert result == sample_read_data
    mock_bus.publish.assert_called_once()
    event = mock_bus.publish.call_args.args[0]
    assert event.kind == ChangeKind.CREATED
    assert event.payload["price"] == "29.99"
