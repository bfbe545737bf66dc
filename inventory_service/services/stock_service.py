"""
Purpose: Stock consistency rules shared by the HTTP routes and the RPC responders.

Role: Sits between the callers and the Ledger. Every committed quantity change is
turned into a StockEvent and published through EventPublisher.

- check_stock: read-only availability check, never raises for a missing item
- deduct_stock: guarded decrement using the ledger's conditional update
- update_stock: overwrite quantity, event kind derived from the direction of change
- create_item: persist a new item (generating a product code when none is given)

A publish failure after a committed write is logged and re-raised as
TransportError: the ledger change stands, but the caller learns the event was
not guaranteed to reach the exchange.
"""

import logging

from inventory_service.core.enums import StockEventType
from inventory_service.core.exceptions import (
    InsufficientStockError,
    ItemConflictError,
    ItemNotFoundError,
    TransportError,
)
from inventory_service.integrations.events import StockEvent
from inventory_service.integrations.publisher import EventPublisher
from inventory_service.schemas.stock import StockCheckResult, StockItemCreate, StockItemRead
from inventory_service.services.ledger import Ledger
from inventory_service.services.product_code import generate_unique_product_code

logger = logging.getLogger(__name__)


class StockService:
    def __init__(self, ledger: Ledger, publisher: EventPublisher):
        self.ledger = ledger
        self.publisher = publisher

    async def get_item(self, product_code: str) -> StockItemRead:
        item = await self.ledger.find_by_code(product_code)
        if not item:
            raise ItemNotFoundError(product_code)
        logger.debug(f"Fetched stock for item {item.name}: {item.product_code}")
        return item

    async def check_stock(self, product_code: str, quantity: int) -> StockCheckResult:
        item = await self.ledger.find_by_code(product_code)

        if not item:
            logger.info(f"Stock check failed: Product {product_code} not found")
            return StockCheckResult(
                available=False,
                current_stock=0,
                message="Item not found in inventory",
            )

        available = item.quantity >= quantity
        return StockCheckResult(
            available=available,
            current_stock=item.quantity,
            message=(
                "Stock available" if available
                else f"Insufficient stock. Requested: {quantity}, Available: {item.quantity}"
            ),
        )

    async def deduct_stock(self, product_code: str, quantity: int) -> StockItemRead:
        """
        Decrement stock by ``quantity``.

        Raises:
            ItemNotFoundError: no item for the code
            InsufficientStockError: less than ``quantity`` on hand at write time
            TransportError: deducted, but the REDUCED event could not be published
        """
        item = await self.get_item(product_code)

        if item.quantity < quantity:
            raise InsufficientStockError(product_code, item.name, quantity, item.quantity)

        updated = await self.ledger.deduct_if_available(product_code, quantity)
        if updated is None:
            # Lost a race with another deduction (or the item vanished) between read and write
            current = await self.ledger.find_by_code(product_code)
            if current is None:
                raise ItemNotFoundError(product_code, "Item not found in inventory")
            raise InsufficientStockError(product_code, current.name, quantity, current.quantity)

        logger.info(
            f"Deducted {quantity} of {product_code}. "
            f"Stock {updated.quantity + quantity} -> {updated.quantity}"
        )

        await self._publish_event(StockEvent(
            event_type=StockEventType.REDUCED,
            product_code=product_code,
            previous_quantity=updated.quantity + quantity,
            new_quantity=updated.quantity,
            product_name=updated.name,
        ))
        return updated

    async def update_stock(self, product_code: str, quantity: int) -> StockItemRead:
        item = await self.get_item(product_code)
        previous_quantity = item.quantity

        updated = await self.ledger.set_quantity(product_code, quantity)
        if updated is None:
            raise ItemNotFoundError(product_code)

        # Unchanged quantity is reported as REDUCED
        event_type = (
            StockEventType.ADDED if quantity > previous_quantity
            else StockEventType.REDUCED
        )

        logger.info(f"Stock updated for item {item.name}. New stock: {quantity}")

        await self._publish_event(StockEvent(
            event_type=event_type,
            product_code=product_code,
            previous_quantity=previous_quantity,
            new_quantity=quantity,
            product_name=item.name,
        ))
        return updated

    async def create_item(self, item_data: StockItemCreate) -> StockItemRead:
        if not item_data.product_code:
            code = await generate_unique_product_code(self.ledger)
            item_data = item_data.model_copy(update={"product_code": code})
        elif await self.ledger.find_by_code(item_data.product_code):
            raise ItemConflictError(item_data.product_code)

        saved = await self.ledger.create(item_data)
        logger.info(f"Item created: {saved.product_code}")

        await self._publish_event(StockEvent(
            event_type=StockEventType.ADDED,
            product_code=saved.product_code,
            previous_quantity=0,
            new_quantity=saved.quantity,
            product_name=saved.name,
        ))
        return saved

    async def _publish_event(self, event: StockEvent) -> None:
        try:
            await self.publisher.publish_stock_event(event)
            logger.info(f"Published {event.event_type.value} event for product {event.product_code}")
        except TransportError as e:
            logger.error(f"Failed to publish stock update event: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to publish stock update event: {e}")
            raise TransportError(f"Failed to publish stock update event: {e}") from e
