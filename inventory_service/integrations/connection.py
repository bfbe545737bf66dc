"""
Purpose: Owns the broker connection and the single channel everything else uses.

Contents:
ConnectionManager: connect with a fixed number of attempts and a fixed delay between them,
re-enter that loop on its own when the broker closes the connection or channel, and run
the registered on-connect listeners (topology declaration, RPC consumers) after every
successful connect so a reconnect looks like added latency to callers.

Only one connect attempt runs at a time: connect() and reconnect() hand every concurrent
caller the same in-flight task. Other components never keep the channel; they ask for it
with get_channel() each time they need it.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractConnection

from inventory_service.core.config import get_settings
from inventory_service.core.enums import ConnectionState
from inventory_service.core.exceptions import TransportError

logger = logging.getLogger(__name__)

ConnectedListener = Callable[[AbstractChannel], Awaitable[None]]


class ConnectionManager:
    def __init__(
        self,
        url: Optional[str] = None,
        max_retries: Optional[int] = None,
        retry_delay: Optional[float] = None,
        prefetch_count: Optional[int] = None,
    ):
        settings = get_settings()
        self.url = url or settings.RABBITMQ_URI
        self.max_retries = max_retries if max_retries is not None else settings.RABBITMQ_MAX_RETRIES
        self.retry_delay = retry_delay if retry_delay is not None else settings.RABBITMQ_RETRY_DELAY
        self.prefetch_count = prefetch_count or settings.RABBITMQ_PREFETCH_COUNT

        self._connection: Optional[AbstractConnection] = None
        self._channel: Optional[AbstractChannel] = None
        self._state = ConnectionState.DISCONNECTED
        self._connect_task: Optional[asyncio.Task] = None
        self._listeners: List[ConnectedListener] = []
        self._stopped = False

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._channel is not None and not self._channel.is_closed

    def add_connected_listener(self, listener: ConnectedListener) -> None:
        """Register a coroutine run with the fresh channel after every successful connect"""
        self._listeners.append(listener)

    async def connect(self) -> bool:
        """
        Establish the connection and channel.

        Returns True once connected, False when every attempt failed. A call made
        while an attempt is already running waits for that attempt instead of
        starting another. After close() this raises TransportError until start().
        """
        if self._stopped:
            raise TransportError("RabbitMQ connection manager is closed")
        if self._attempt_in_flight():
            return await asyncio.shield(self._connect_task)
        if self.is_connected:
            return True

        self._connect_task = asyncio.create_task(self._connect_with_retry())
        return await asyncio.shield(self._connect_task)

    async def start(self) -> bool:
        """Re-arm a closed manager and connect"""
        self._stopped = False
        return await self.connect()

    async def reconnect(self) -> bool:
        """Drop the current connection (if any) and run the connect loop again"""
        if self._stopped:
            return False
        if self._attempt_in_flight():
            return await asyncio.shield(self._connect_task)

        self._state = ConnectionState.RECONNECTING
        self._connect_task = asyncio.create_task(self._connect_with_retry(reset=True))
        return await asyncio.shield(self._connect_task)

    async def get_channel(self) -> AbstractChannel:
        """Return the live channel, connecting on demand; TransportError if none can be had"""
        if self._stopped:
            raise TransportError("RabbitMQ connection manager is closed")
        if not self.is_connected:
            logger.warning("RabbitMQ channel not available, attempting to reconnect...")
            await self.connect()
        if not self.is_connected:
            raise TransportError("RabbitMQ channel is not initialized")
        return self._channel

    async def close(self) -> None:
        self._stopped = True
        if self._attempt_in_flight():
            self._connect_task.cancel()
            try:
                await self._connect_task
            except asyncio.CancelledError:
                pass
        await self._teardown()
        self._state = ConnectionState.DISCONNECTED
        logger.info("RabbitMQ connection closed")

    def _attempt_in_flight(self) -> bool:
        return self._connect_task is not None and not self._connect_task.done()

    async def _connect_with_retry(self, reset: bool = False) -> bool:
        if reset:
            await self._teardown()
        if self._state is not ConnectionState.RECONNECTING:
            self._state = ConnectionState.CONNECTING

        for attempt in range(1, self.max_retries + 1):
            try:
                await self._open()
            except Exception as e:
                logger.error(
                    f"Failed to connect to RabbitMQ (Attempt {attempt}/{self.max_retries}): {e}"
                )
                await self._teardown()
                if attempt < self.max_retries:
                    await asyncio.sleep(self.retry_delay)
                continue

            self._state = ConnectionState.CONNECTED
            logger.info("RabbitMQ connection established successfully")
            return True

        self._state = ConnectionState.DISCONNECTED
        logger.error(f"Failed to connect after {self.max_retries} attempts")
        return False

    async def _open(self) -> None:
        connection = await aio_pika.connect(self.url)
        self._connection = connection
        connection.close_callbacks.add(self._on_connection_closed)

        channel = await connection.channel()
        await channel.set_qos(prefetch_count=self.prefetch_count)
        channel.close_callbacks.add(self._on_channel_closed)
        self._channel = channel

        for listener in self._listeners:
            await listener(channel)

    async def _teardown(self) -> None:
        # Detach first so close callbacks fired below see stale senders and do nothing
        channel, connection = self._channel, self._connection
        self._channel = None
        self._connection = None

        for resource in (channel, connection):
            if resource is None or resource.is_closed:
                continue
            try:
                await resource.close()
            except Exception as e:
                logger.error(f"Error during cleanup: {e}")

    def _on_connection_closed(self, sender, exc=None) -> None:
        if sender is not self._connection:
            return
        logger.error(f"RabbitMQ connection closed by broker: {exc}")
        self._schedule_reconnect()

    def _on_channel_closed(self, sender, exc=None) -> None:
        if sender is not self._channel:
            return
        logger.error(f"RabbitMQ channel closed: {exc}")
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._stopped or self._attempt_in_flight():
            return
        self._state = ConnectionState.RECONNECTING
        self._connect_task = asyncio.get_running_loop().create_task(
            self._connect_with_retry(reset=True)
        )
