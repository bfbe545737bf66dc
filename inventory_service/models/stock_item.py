"""
SQLAlchemy model for the stock ledger.

One row per product code. Quantity and price are guarded by CHECK constraints
so a negative value is rejected by the database even if a caller slips past
the service-level checks.
"""

from sqlalchemy import Column, Integer, String, Float, TIMESTAMP, CheckConstraint, text

from inventory_service.database import Base


class StockItem(Base):
    __tablename__ = "stock_items"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_stock_items_quantity_non_negative"),
        CheckConstraint("price >= 0", name="ck_stock_items_price_non_negative"),
    )

    id = Column(Integer, primary_key=True)

    created_at = Column(
        TIMESTAMP(timezone=False),
        server_default=text("timezone('utc', now())"),
        nullable=False
    )
    updated_at = Column(
        TIMESTAMP(timezone=False),
        server_default=text("timezone('utc', now())"),
        onupdate=text("timezone('utc', now())"),
        nullable=False
    )

    product_code = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(String)
    quantity = Column(Integer, nullable=False, default=0)
    price = Column(Float, nullable=False, default=0.0)

    def __repr__(self):
        return f"<StockItem {self.product_code} qty={self.quantity}>"
