from .stock import (
    StockItemCreate,
    StockItemRead,
    StockQuantityUpdate,
    StockRequestItem,
    StockCheckRequest,
    StockDeductRequest,
    StockCheckResult,
    StockCheckDetail,
    StockCheckResponse,
    Deduction,
    StockDeductResponse,
)
