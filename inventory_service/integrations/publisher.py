"""
Purpose: Publishes stock events (and any other JSON payload) to a broker exchange.

Failure policy: a publish that raises gets exactly one reconnect-and-retry. If the retry
fails too, or no channel can be obtained, TransportError reaches the caller.
"""

import json
import logging
from typing import Any

import aio_pika
from pydantic import BaseModel

from inventory_service.core.enums import INVENTORY_EXCHANGE
from inventory_service.core.exceptions import TransportError
from inventory_service.integrations.connection import ConnectionManager
from inventory_service.integrations.events import StockEvent

logger = logging.getLogger(__name__)


def serialize_payload(payload: Any) -> bytes:
    if isinstance(payload, bytes):
        return payload
    if isinstance(payload, BaseModel):
        return payload.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
    return json.dumps(payload, default=str).encode("utf-8")


class EventPublisher:
    def __init__(self, connection: ConnectionManager):
        self.connection = connection

    async def publish_stock_event(self, event: StockEvent) -> None:
        await self.publish(INVENTORY_EXCHANGE, event.routing_key, event)

    async def publish(self, exchange_name: str, routing_key: str, payload: Any) -> None:
        body = serialize_payload(payload)

        try:
            await self._publish_once(exchange_name, routing_key, body)
        except TransportError:
            raise
        except Exception as e:
            logger.error(f"Failed to publish message to {exchange_name}: {e}")
            if not await self.connection.reconnect():
                raise TransportError(
                    f"Failed to publish to {exchange_name} with routing key {routing_key}: "
                    f"broker unreachable after reconnect"
                ) from e
            try:
                await self._publish_once(exchange_name, routing_key, body)
            except TransportError:
                raise
            except Exception as retry_error:
                logger.error(f"Retry publish to {exchange_name} failed: {retry_error}")
                raise TransportError(
                    f"Failed to publish to {exchange_name} with routing key {routing_key}: {retry_error}"
                ) from retry_error

        logger.debug(f"Published message to {exchange_name} with routing key {routing_key}")

    async def _publish_once(self, exchange_name: str, routing_key: str, body: bytes) -> None:
        channel = await self.connection.get_channel()
        if exchange_name:
            exchange = await channel.get_exchange(exchange_name, ensure=False)
        else:
            exchange = channel.default_exchange

        await exchange.publish(
            aio_pika.Message(
                body=body,
                content_type="application/json",
                delivery_mode=aio_pika.DeliveryMode.PERSISTENT,
            ),
            routing_key=routing_key,
        )
