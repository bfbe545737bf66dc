from .stock_item import StockItem

__all__ = ["StockItem"]
