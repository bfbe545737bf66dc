import logging

from fastapi import APIRouter, Depends, HTTPException, status

from inventory_service.core.exceptions import (
    InsufficientStockError,
    ItemConflictError,
    ItemNotFoundError,
    ProductCodeGenerationError,
    TransportError,
)
from inventory_service.dependencies import get_stock_service
from inventory_service.schemas.stock import StockItemCreate, StockItemRead, StockQuantityUpdate
from inventory_service.services.stock_service import StockService

logger = logging.getLogger(__name__)

router = APIRouter()


def _event_not_delivered(e: TransportError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=f"Stock change saved but the stock event was not delivered: {e}",
    )


@router.post("", response_model=StockItemRead, status_code=status.HTTP_201_CREATED)
async def create_item(
    item: StockItemCreate,
    stock_service: StockService = Depends(get_stock_service),
):
    """Create a new inventory item"""
    try:
        return await stock_service.create_item(item)
    except ItemConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ProductCodeGenerationError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except TransportError as e:
        raise _event_not_delivered(e)


@router.put("/{product_code}/stock", response_model=StockItemRead)
async def update_stock(
    product_code: str,
    update: StockQuantityUpdate,
    stock_service: StockService = Depends(get_stock_service),
):
    """Set the stock quantity of an item"""
    try:
        return await stock_service.update_stock(product_code, update.quantity)
    except ItemNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except TransportError as e:
        raise _event_not_delivered(e)


@router.post("/{product_code}/deduct", response_model=StockItemRead)
async def deduct_stock(
    product_code: str,
    update: StockQuantityUpdate,
    stock_service: StockService = Depends(get_stock_service),
):
    """Remove a quantity from an item's stock"""
    try:
        return await stock_service.deduct_stock(product_code, update.quantity)
    except ItemNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InsufficientStockError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except TransportError as e:
        raise _event_not_delivered(e)


@router.get("/{product_code}", response_model=StockItemRead)
async def get_item(
    product_code: str,
    stock_service: StockService = Depends(get_stock_service),
):
    """Get an inventory item by product code"""
    try:
        return await stock_service.get_item(product_code)
    except ItemNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
