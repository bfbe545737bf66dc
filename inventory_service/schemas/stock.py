"""
Schemas for stock items and the stock RPC payloads.

Wire payloads use camelCase keys (``productCode``, ``currentStock`` ...) so
callers written against the existing order service keep working; Python code
uses the snake_case attribute names.
"""

from datetime import datetime
from typing import Optional, List, Dict

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def to_wire(self) -> bytes:
        """Serialize with camelCase keys, dropping unset optionals."""
        return self.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")


# --- Stock items ---

class StockItemCreate(CamelModel):
    product_code: Optional[str] = Field(default=None, min_length=3)
    name: str = Field(min_length=3)
    description: str = ""
    quantity: int = Field(gt=0)
    price: float = Field(gt=0)


class StockItemRead(CamelModel):
    product_code: str
    name: str
    description: Optional[str] = None
    quantity: int
    price: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StockQuantityUpdate(CamelModel):
    quantity: int = Field(ge=0)


# --- RPC requests ---

class StockRequestItem(CamelModel):
    product_code: str = Field(min_length=1)
    quantity: int = Field(gt=0)


class StockCheckRequest(CamelModel):
    items: List[StockRequestItem]


class StockDeductRequest(StockCheckRequest):
    pass


# --- RPC responses ---

class StockCheckResult(CamelModel):
    available: bool
    current_stock: int
    message: str


class StockCheckDetail(StockCheckResult):
    product_code: str


class StockCheckResponse(CamelModel):
    success: bool
    message: str
    available_stock: Dict[str, int] = Field(default_factory=dict)
    details: List[StockCheckDetail] = Field(default_factory=list)

    def to_wire(self) -> bytes:
        # availableStock/details are always present, even when empty
        return self.model_dump_json(by_alias=True).encode("utf-8")


class Deduction(CamelModel):
    product_code: str
    quantity: int


class StockDeductResponse(CamelModel):
    success: bool
    message: str
    deductions: Optional[List[Deduction]] = None
