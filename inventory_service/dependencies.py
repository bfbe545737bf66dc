from fastapi import Request

from inventory_service.services.stock_service import StockService


def get_stock_service(request: Request) -> StockService:
    """StockService built during application startup."""
    return request.app.state.messaging.stock_service
