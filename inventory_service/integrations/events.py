"""
Purpose: Defines the data structure for events published when a product's stock level changes.
Contents:
StockEvent (Pydantic Model): Immutable record of one committed quantity change (product_code, previous and new
quantity, kind of change, timestamp). Built by StockService right after the ledger write and handed to
EventPublisher, which routes it to the inventory exchange under ``inventory.stock.<kind>``.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import ConfigDict, Field

from inventory_service.core.enums import StockEventType
from inventory_service.schemas.stock import CamelModel


class StockEvent(CamelModel):
    model_config = ConfigDict(frozen=True)

    event_type: StockEventType
    product_code: str
    previous_quantity: int
    new_quantity: int
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    product_name: Optional[str] = None

    @property
    def routing_key(self) -> str:
        return self.event_type.routing_key
