"""
Purpose: Handles the initialization and wiring of the messaging layer, intended to be called during application startup.

Contents:
InventoryMessaging: Holds the ConnectionManager, EventPublisher, StockService and both RPC responders.
Registers itself as the connection's on-connect listener so topology declaration and consumer
registration re-run after every (re)connect.
setup_messaging: Builds an InventoryMessaging around a Ledger using values from get_settings().
"""

import logging
from typing import Optional

from aio_pika.abc import AbstractChannel

from inventory_service.integrations.connection import ConnectionManager
from inventory_service.integrations.publisher import EventPublisher
from inventory_service.integrations.responders import StockCheckResponder, StockDeductResponder
from inventory_service.integrations.topology import InventoryTopology, declare_topology
from inventory_service.services.ledger import Ledger
from inventory_service.services.stock_service import StockService

logger = logging.getLogger(__name__)


class InventoryMessaging:
    def __init__(self, ledger: Ledger, connection: ConnectionManager):
        self.connection = connection
        self.publisher = EventPublisher(connection)
        self.stock_service = StockService(ledger, self.publisher)
        self.stock_check_responder = StockCheckResponder(self.stock_service, connection)
        self.stock_deduct_responder = StockDeductResponder(self.stock_service, connection)
        self.topology: Optional[InventoryTopology] = None

        connection.add_connected_listener(self._on_connected)

    async def _on_connected(self, channel: AbstractChannel) -> None:
        self.topology = await declare_topology(channel)
        await self.stock_check_responder.subscribe(self.topology.stock_check_queue)
        await self.stock_deduct_responder.subscribe(self.topology.stock_deduct_queue)

    async def start(self) -> bool:
        """Start the worker pools and connect; False if the broker stayed unreachable"""
        self.stock_check_responder.start()
        self.stock_deduct_responder.start()
        connected = await self.connection.start()
        if not connected:
            logger.error("Messaging started without a broker connection; will retry on next publish")
        return connected

    async def stop(self) -> None:
        # Workers must be gone before the connection closes
        await self.stock_check_responder.stop()
        await self.stock_deduct_responder.stop()
        await self.connection.close()


def setup_messaging(ledger: Ledger, connection: Optional[ConnectionManager] = None) -> InventoryMessaging:
    """
    Initialize and configure the messaging layer around a ledger
    """
    connection = connection or ConnectionManager()
    logger.info("Configured inventory messaging")
    return InventoryMessaging(ledger, connection)
