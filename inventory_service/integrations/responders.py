"""
Purpose: Request/reply handlers for the stock-check and stock-deduct queues.

Each responder owns a bounded hand-off queue. The broker consumer callback only puts the
incoming message on that queue; a fixed pool of worker tasks takes messages off it, runs
the batch against StockService, publishes the reply to the default exchange using the
request's ``reply_to`` and ``correlation_id``, and only then acknowledges. A crash before
the ack leaves the message to be redelivered by the broker.

Workers outlive reconnects: after a reconnect only the broker consumer is registered again,
and requests still buffered from the closed channel are dropped unanswered.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Dict, List, Optional

import aio_pika
from aio_pika.abc import AbstractIncomingMessage, AbstractQueue
from pydantic import ValidationError

from inventory_service.core.config import get_settings
from inventory_service.core.exceptions import BaseServiceError, ProtocolError, TransportError
from inventory_service.integrations.connection import ConnectionManager
from inventory_service.schemas.stock import (
    CamelModel,
    Deduction,
    StockCheckDetail,
    StockCheckRequest,
    StockCheckResponse,
    StockDeductRequest,
    StockDeductResponse,
    StockRequestItem,
)
from inventory_service.services.stock_service import StockService

logger = logging.getLogger(__name__)


class RpcResponder(ABC):
    name: str = "rpc"

    def __init__(
        self,
        stock_service: StockService,
        connection: ConnectionManager,
        workers: Optional[int] = None,
        max_pending: Optional[int] = None,
    ):
        settings = get_settings()
        self.stock_service = stock_service
        self.connection = connection
        self.workers = workers or settings.RPC_WORKERS
        self.pending: asyncio.Queue = asyncio.Queue(maxsize=max_pending or settings.RPC_MAX_PENDING)
        self._worker_tasks: List[asyncio.Task] = []

    @abstractmethod
    async def handle(self, body: bytes) -> CamelModel:
        """Run the request and build the reply payload"""
        pass

    @abstractmethod
    def failure_response(self, error: Exception) -> CamelModel:
        """Reply payload for a request that could not be processed"""
        pass

    def start(self) -> None:
        if self._worker_tasks:
            return
        self._worker_tasks = [
            asyncio.create_task(self._worker(), name=f"{self.name}-worker-{i}")
            for i in range(self.workers)
        ]
        logger.info(f"Started {self.workers} {self.name} workers")

    async def stop(self) -> None:
        for task in self._worker_tasks:
            task.cancel()
        await asyncio.gather(*self._worker_tasks, return_exceptions=True)
        self._worker_tasks = []

    async def subscribe(self, queue: AbstractQueue) -> None:
        await queue.consume(self.enqueue, no_ack=False)
        logger.info(f"Subscribed to queue: {queue.name}")

    async def enqueue(self, message: AbstractIncomingMessage) -> None:
        await self.pending.put(message)

    async def _worker(self) -> None:
        while True:
            message = await self.pending.get()
            try:
                await self.process(message)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                # Keep the worker alive; the message stays unacked and will be redelivered
                logger.exception(f"Unhandled error in {self.name} worker: {e}")
            finally:
                self.pending.task_done()

    async def process(self, message: AbstractIncomingMessage) -> None:
        if message.channel.is_closed:
            # Unacked deliveries of a dead channel are requeued by the broker
            logger.warning(
                f"Dropping buffered {self.name} request from a closed channel "
                f"(correlation_id={message.correlation_id})"
            )
            return

        logger.info(f"Received {self.name} request (correlation_id={message.correlation_id})")
        try:
            response = await self.handle(message.body)
        except (BaseServiceError, ValidationError) as e:
            logger.warning(f"Rejected {self.name} request: {e}")
            response = self.failure_response(e)
        except Exception as e:
            logger.exception(f"Error processing {self.name} request: {e}")
            response = self.failure_response(e)

        await self.reply(message, response)
        await message.ack()

    async def reply(self, message: AbstractIncomingMessage, response: CamelModel) -> None:
        if not message.reply_to:
            logger.warning(f"{self.name} request has no reply_to, dropping reply")
            return
        try:
            channel = await self.connection.get_channel()
            await channel.default_exchange.publish(
                aio_pika.Message(
                    body=response.to_wire(),
                    content_type="application/json",
                    correlation_id=message.correlation_id,
                ),
                routing_key=message.reply_to,
            )
            logger.info(f"Replied to {message.reply_to} (correlation_id={message.correlation_id})")
        except Exception as e:
            logger.error(f"Failed to reply to {message.reply_to}: {e}")

    @staticmethod
    def parse_request(body: bytes, model):
        try:
            return model.model_validate_json(body)
        except ValidationError as e:
            raise ProtocolError(f"Malformed request payload: {e.error_count()} validation error(s)") from e


class StockCheckResponder(RpcResponder):
    name = "stock-check"

    async def handle(self, body: bytes) -> StockCheckResponse:
        request = self.parse_request(body, StockCheckRequest)
        details = await asyncio.gather(*(self._check_item(item) for item in request.items))

        success = all(detail.available for detail in details)
        message = (
            "All items in stock" if success
            else "; ".join(detail.message for detail in details if not detail.available)
        )
        return StockCheckResponse(
            success=success,
            message=message,
            available_stock={detail.product_code: detail.current_stock for detail in details},
            details=details,
        )

    async def _check_item(self, item: StockRequestItem) -> StockCheckDetail:
        try:
            result = await self.stock_service.check_stock(item.product_code, item.quantity)
        except Exception as e:
            logger.error(f"Stock check for {item.product_code} failed: {e}")
            return StockCheckDetail(
                product_code=item.product_code,
                available=False,
                current_stock=0,
                message=str(e),
            )
        return StockCheckDetail(product_code=item.product_code, **result.model_dump())

    def failure_response(self, error: Exception) -> StockCheckResponse:
        return StockCheckResponse(success=False, message=str(error), available_stock={}, details=[])


class StockDeductResponder(RpcResponder):
    name = "stock-deduct"

    async def handle(self, body: bytes) -> StockDeductResponse:
        request = self.parse_request(body, StockDeductRequest)

        # Check stage: the same code may appear more than once, so check the summed quantity
        requested: Dict[str, int] = defaultdict(int)
        for item in request.items:
            requested[item.product_code] += item.quantity

        checks = await asyncio.gather(*(
            self.stock_service.check_stock(code, quantity)
            for code, quantity in requested.items()
        ))
        unavailable = [
            f"{code}: {check.message}"
            for code, check in zip(requested, checks)
            if not check.available
        ]
        if unavailable:
            return StockDeductResponse(
                success=False,
                message="Some items are not available in requested quantity: " + "; ".join(unavailable),
            )

        results = await asyncio.gather(
            *(self.stock_service.deduct_stock(item.product_code, item.quantity) for item in request.items),
            return_exceptions=True,
        )
        deducted: List[StockRequestItem] = []
        undelivered: List[str] = []
        errors: List[BaseException] = []
        for item, result in zip(request.items, results):
            if isinstance(result, TransportError):
                # Ledger write committed, only the stock event is missing
                deducted.append(item)
                undelivered.append(item.product_code)
            elif isinstance(result, BaseException):
                errors.append(result)
            else:
                deducted.append(item)

        if errors:
            # Already-committed deductions are reported, not rolled back
            done = ", ".join(f"{item.product_code} x{item.quantity}" for item in deducted) or "none"
            logger.error(f"Partial stock deduction; deducted: {done}; errors: {errors}")
            return StockDeductResponse(
                success=False,
                message=f"{errors[0]} (already deducted: {done})",
            )

        message = "Stock deducted successfully"
        if undelivered:
            message += f" (stock events not delivered for: {', '.join(undelivered)})"
        return StockDeductResponse(
            success=True,
            message=message,
            deductions=[Deduction(product_code=item.product_code, quantity=item.quantity) for item in deducted],
        )

    def failure_response(self, error: Exception) -> StockDeductResponse:
        return StockDeductResponse(success=False, message=str(error) or "Failed to deduct stock")
