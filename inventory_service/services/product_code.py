import random
from typing import Optional

from inventory_service.core.config import get_settings
from inventory_service.core.exceptions import ProductCodeGenerationError
from inventory_service.services.ledger import Ledger

CODE_DIGITS = 9


def generate_product_code(prefix: str = "INV-") -> str:
    """Candidate product code: prefix plus nine zero-padded random digits."""
    return f"{prefix}{random.randrange(10 ** CODE_DIGITS):0{CODE_DIGITS}d}"


async def generate_unique_product_code(
    ledger: Ledger,
    prefix: Optional[str] = None,
    max_attempts: Optional[int] = None,
) -> str:
    """
    Sample candidate codes until one is not yet in the ledger.

    Gives up after ``max_attempts`` collisions with ProductCodeGenerationError
    rather than looping forever.
    """
    settings = get_settings()
    prefix = settings.PRODUCT_CODE_PREFIX if prefix is None else prefix
    max_attempts = max_attempts or settings.PRODUCT_CODE_MAX_ATTEMPTS

    for _ in range(max_attempts):
        candidate = generate_product_code(prefix)
        if await ledger.find_by_code(candidate) is None:
            return candidate

    raise ProductCodeGenerationError(
        f"No unused product code found after {max_attempts} attempts"
    )
