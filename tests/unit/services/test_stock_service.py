# tests/unit/services/test_stock_service.py
import asyncio
import re

import pytest

from inventory_service.core.enums import StockEventType
from inventory_service.core.exceptions import (
    InsufficientStockError,
    ItemConflictError,
    ItemNotFoundError,
    TransportError,
)
from inventory_service.schemas.stock import StockItemCreate


def published_events(mock_publisher):
    return [c.args[0] for c in mock_publisher.publish_stock_event.await_args_list]


# --- check_stock ---

@pytest.mark.asyncio
async def test_check_stock_available_when_enough_on_hand(stock_service):
    result = await stock_service.check_stock("A", 10)

    assert result.available is True
    assert result.current_stock == 10
    assert result.message == "Stock available"

@pytest.mark.asyncio
async def test_check_stock_insufficient_reports_stored_quantity(stock_service):
    result = await stock_service.check_stock("A", 11)

    assert result.available is False
    assert result.current_stock == 10
    assert result.message == "Insufficient stock. Requested: 11, Available: 10"

@pytest.mark.asyncio
async def test_check_stock_missing_item_does_not_raise(stock_service, ledger):
    result = await stock_service.check_stock("MISSING", 1)

    assert result.available is False
    assert result.current_stock == 0
    assert result.message == "Item not found in inventory"
    assert ledger.write_calls == []


# --- deduct_stock ---

@pytest.mark.asyncio
async def test_deduct_stock_decrements_and_emits_one_reduced_event(stock_service, ledger, mock_publisher):
    updated = await stock_service.deduct_stock("A", 4)

    assert updated.quantity == 6
    assert ledger.quantity("A") == 6

    events = published_events(mock_publisher)
    assert len(events) == 1
    event = events[0]
    assert event.event_type == StockEventType.REDUCED
    assert event.previous_quantity == 10
    assert event.new_quantity == 6
    assert event.product_name == "Widget A"
    assert event.routing_key == "inventory.stock.reduced"

@pytest.mark.asyncio
async def test_deduct_stock_insufficient_raises_without_mutation(stock_service, ledger, mock_publisher):
    with pytest.raises(InsufficientStockError) as exc_info:
        await stock_service.deduct_stock("A", 11)

    error = exc_info.value
    assert error.product_name == "Widget A"
    assert error.requested == 11
    assert error.available == 10
    assert ledger.quantity("A") == 10
    assert ledger.write_calls == []
    mock_publisher.publish_stock_event.assert_not_awaited()

@pytest.mark.asyncio
async def test_deduct_stock_missing_item(stock_service, mock_publisher):
    with pytest.raises(ItemNotFoundError):
        await stock_service.deduct_stock("MISSING", 1)
    mock_publisher.publish_stock_event.assert_not_awaited()

@pytest.mark.asyncio
async def test_concurrent_deductions_never_overdraw(stock_service, ledger, mock_publisher):
    """Both calls pass the read check; the conditional write lets only one through."""
    results = await asyncio.gather(
        stock_service.deduct_stock("A", 8),
        stock_service.deduct_stock("A", 8),
        return_exceptions=True,
    )

    successes = [r for r in results if not isinstance(r, Exception)]
    failures = [r for r in results if isinstance(r, InsufficientStockError)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert failures[0].available == 2
    assert ledger.quantity("A") == 2
    assert len(published_events(mock_publisher)) == 1

@pytest.mark.asyncio
async def test_deduct_stock_publish_failure_keeps_deduction(stock_service, ledger, mock_publisher):
    mock_publisher.publish_stock_event.side_effect = TransportError("broker down")

    with pytest.raises(TransportError):
        await stock_service.deduct_stock("A", 3)

    assert ledger.quantity("A") == 7

@pytest.mark.asyncio
async def test_unexpected_publish_error_surfaces_as_transport_error(stock_service, mock_publisher):
    mock_publisher.publish_stock_event.side_effect = RuntimeError("socket closed")

    with pytest.raises(TransportError) as exc_info:
        await stock_service.deduct_stock("A", 1)
    assert isinstance(exc_info.value.__cause__, RuntimeError)


# --- update_stock ---

@pytest.mark.asyncio
@pytest.mark.parametrize(
    "new_quantity, expected_type",
    [
        (15, StockEventType.ADDED),
        (3, StockEventType.REDUCED),
        (10, StockEventType.REDUCED),  # unchanged quantity
    ],
)
async def test_update_stock_derives_event_type(stock_service, ledger, mock_publisher, new_quantity, expected_type):
    updated = await stock_service.update_stock("A", new_quantity)

    assert updated.quantity == new_quantity
    assert ledger.quantity("A") == new_quantity
    event = published_events(mock_publisher)[0]
    assert event.event_type == expected_type
    assert event.previous_quantity == 10
    assert event.new_quantity == new_quantity

@pytest.mark.asyncio
async def test_update_stock_missing_item(stock_service, mock_publisher):
    with pytest.raises(ItemNotFoundError):
        await stock_service.update_stock("MISSING", 5)
    mock_publisher.publish_stock_event.assert_not_awaited()


# --- create_item / get_item ---

@pytest.mark.asyncio
async def test_create_item_with_code_emits_added_from_zero(stock_service, mock_publisher):
    item = await stock_service.create_item(
        StockItemCreate(product_code="NEW-001", name="Gadget", quantity=7, price=2.5)
    )

    assert item.product_code == "NEW-001"
    event = published_events(mock_publisher)[0]
    assert event.event_type == StockEventType.ADDED
    assert event.previous_quantity == 0
    assert event.new_quantity == 7
    assert event.product_name == "Gadget"

@pytest.mark.asyncio
async def test_create_item_duplicate_code_conflicts(stock_service, ledger, mock_publisher):
    ledger.add("DUP-001", 5, name="Existing")

    with pytest.raises(ItemConflictError):
        await stock_service.create_item(
            StockItemCreate(product_code="DUP-001", name="Duplicate", quantity=1, price=1.0)
        )
    mock_publisher.publish_stock_event.assert_not_awaited()

@pytest.mark.asyncio
async def test_create_item_generates_code_when_missing(stock_service, ledger):
    item = await stock_service.create_item(StockItemCreate(name="Gizmo", quantity=2, price=9.99))

    assert re.fullmatch(r"INV-\d{9}", item.product_code)
    assert item.product_code in ledger.items

@pytest.mark.asyncio
async def test_get_item_missing_raises(stock_service):
    with pytest.raises(ItemNotFoundError):
        await stock_service.get_item("MISSING")
