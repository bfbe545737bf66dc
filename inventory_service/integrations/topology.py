"""Declare the inventory exchange, the two RPC request queues and their bindings.

Every declaration is durable and idempotent, so this runs on each (re)connect.
"""

import logging
from dataclasses import dataclass

from aio_pika import ExchangeType
from aio_pika.abc import AbstractChannel, AbstractExchange, AbstractQueue

from inventory_service.core.enums import (
    INVENTORY_EXCHANGE,
    STOCK_CHECK_QUEUE,
    STOCK_DEDUCT_QUEUE,
    STOCK_CHECK_BINDING_KEY,
    STOCK_DEDUCT_BINDING_KEY,
)

logger = logging.getLogger(__name__)


@dataclass
class InventoryTopology:
    exchange: AbstractExchange
    stock_check_queue: AbstractQueue
    stock_deduct_queue: AbstractQueue


async def declare_topology(channel: AbstractChannel) -> InventoryTopology:
    """Exchange first, then queues, then bindings. Returns the handles consumers need."""
    exchange = await channel.declare_exchange(INVENTORY_EXCHANGE, ExchangeType.TOPIC, durable=True)

    stock_check_queue = await channel.declare_queue(STOCK_CHECK_QUEUE, durable=True)
    stock_deduct_queue = await channel.declare_queue(STOCK_DEDUCT_QUEUE, durable=True)

    await stock_check_queue.bind(exchange, routing_key=STOCK_CHECK_BINDING_KEY)
    await stock_deduct_queue.bind(exchange, routing_key=STOCK_DEDUCT_BINDING_KEY)

    logger.info(
        f"Declared exchange {INVENTORY_EXCHANGE} with queues "
        f"{STOCK_CHECK_QUEUE}, {STOCK_DEDUCT_QUEUE}"
    )
    return InventoryTopology(
        exchange=exchange,
        stock_check_queue=stock_check_queue,
        stock_deduct_queue=stock_deduct_queue,
    )
