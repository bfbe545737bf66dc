class BaseServiceError(Exception):
    """Base exception for all service-related errors."""
    pass

class InventoryServiceError(BaseServiceError):
    """Base exception for inventory/ledger errors."""
    pass

class ItemNotFoundError(InventoryServiceError):
    """Raised when no item exists for a product code."""

    def __init__(self, product_code: str, message: str = "Item not found"):
        self.product_code = product_code
        super().__init__(message)

class ItemConflictError(InventoryServiceError):
    """Raised when creating an item whose product code is already taken."""

    def __init__(self, product_code: str):
        self.product_code = product_code
        super().__init__("Item with this product code already exists")

class InsufficientStockError(InventoryServiceError):
    """Raised when a deduction exceeds the quantity on hand."""

    def __init__(self, product_code: str, product_name: str, requested: int, available: int):
        self.product_code = product_code
        self.product_name = product_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {product_name}. "
            f"Requested: {requested}, Available: {available}"
        )

class ProductCodeGenerationError(InventoryServiceError):
    """Raised when no unused product code was found within the attempt budget."""
    pass

class MessagingError(BaseServiceError):
    """Base exception for message broker errors."""
    pass

class TransportError(MessagingError):
    """Raised when no usable channel exists or a publish failed after its retry."""
    pass

class ProtocolError(MessagingError):
    """Raised when an RPC payload cannot be parsed."""
    pass
