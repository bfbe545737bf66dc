"""
Shared enums and constants used across the application.
"""

from enum import Enum


class StockEventType(str, Enum):
    """Kinds of quantity change published to the inventory exchange"""
    ADDED = "ADDED"
    REDUCED = "REDUCED"
    UPDATED = "UPDATED"

    @property
    def routing_key(self) -> str:
        return f"{EVENT_ROUTING_PREFIX}.{self.value.lower()}"


class ConnectionState(str, Enum):
    """Lifecycle of the broker connection, owned by ConnectionManager"""
    DISCONNECTED = "DISCONNECTED"
    CONNECTING = "CONNECTING"
    CONNECTED = "CONNECTED"
    RECONNECTING = "RECONNECTING"


# Broker topology
INVENTORY_EXCHANGE = "inventory.exchange"
EVENT_ROUTING_PREFIX = "inventory.stock"

STOCK_CHECK_QUEUE = "ORDER_STOCK_CHECK"
STOCK_DEDUCT_QUEUE = "ORDER_STOCK_DEDUCT"

STOCK_CHECK_BINDING_KEY = "inventory.stock.check"
STOCK_DEDUCT_BINDING_KEY = "inventory.stock.deduct"
