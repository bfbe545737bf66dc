"""
Purpose: The authoritative store of item quantities.

Role: StockService only talks to the ledger through the Ledger interface, so the
stock rules can be exercised against any backing store. SqlAlchemyLedger is the
production implementation over the ``stock_items`` table.

Every write is a single statement committed in its own session. Deductions go
through ``deduct_if_available``, a conditional UPDATE that only matches while the
row still holds enough stock, so two concurrent deductions can never drive the
quantity below zero.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from inventory_service.core.exceptions import ItemConflictError
from inventory_service.models.stock_item import StockItem
from inventory_service.schemas.stock import StockItemCreate, StockItemRead

logger = logging.getLogger(__name__)


class Ledger(ABC):

    @abstractmethod
    async def find_by_code(self, product_code: str) -> Optional[StockItemRead]:
        """Return the item for a product code, or None"""
        pass

    @abstractmethod
    async def create(self, item: StockItemCreate) -> StockItemRead:
        """Persist a new item; raises ItemConflictError on a duplicate code"""
        pass

    @abstractmethod
    async def set_quantity(self, product_code: str, quantity: int) -> Optional[StockItemRead]:
        """Overwrite the stored quantity; None if the item does not exist"""
        pass

    @abstractmethod
    async def deduct_if_available(self, product_code: str, quantity: int) -> Optional[StockItemRead]:
        """Atomically subtract ``quantity`` if at least that much is on hand.

        Returns the updated item, or None when the item is missing or short.
        """
        pass


class SqlAlchemyLedger(Ledger):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def find_by_code(self, product_code: str) -> Optional[StockItemRead]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(StockItem).where(StockItem.product_code == product_code)
            )
            item = result.scalar_one_or_none()
            return StockItemRead.model_validate(item) if item else None

    async def create(self, item: StockItemCreate) -> StockItemRead:
        async with self.session_factory() as session:
            row = StockItem(**item.model_dump())
            session.add(row)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                logger.warning(f"Duplicate product code {item.product_code}: {e.orig}")
                raise ItemConflictError(item.product_code) from e
            await session.refresh(row)
            return StockItemRead.model_validate(row)

    async def set_quantity(self, product_code: str, quantity: int) -> Optional[StockItemRead]:
        stmt = (
            update(StockItem)
            .where(StockItem.product_code == product_code)
            .values(quantity=quantity)
            .returning(StockItem)
        )
        return await self._execute_update(stmt)

    async def deduct_if_available(self, product_code: str, quantity: int) -> Optional[StockItemRead]:
        stmt = (
            update(StockItem)
            .where(
                StockItem.product_code == product_code,
                StockItem.quantity >= quantity,
            )
            .values(quantity=StockItem.quantity - quantity)
            .returning(StockItem)
        )
        return await self._execute_update(stmt)

    async def _execute_update(self, stmt) -> Optional[StockItemRead]:
        async with self.session_factory() as session:
            result = await session.execute(stmt)
            row = result.scalar_one_or_none()
            item = StockItemRead.model_validate(row) if row else None
            await session.commit()
            return item
