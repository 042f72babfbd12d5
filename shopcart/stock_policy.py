"""
Stock limits for requested quantities.
"""
from typing import NamedTuple, Optional


class ClampResult(NamedTuple):
    quantity: int
    clamped: bool


def clamp(requested: int, stock: Optional[int]) -> ClampResult:
    """
    Clamp a requested quantity to the available stock.

    A stock of None means no limit. The returned quantity is never negative;
    ``clamped`` is True only when stock reduced the request.
    """
    quantity = max(int(requested), 0)
    if stock is None:
        return ClampResult(quantity, False)
    limit = max(int(stock), 0)
    if quantity > limit:
        return ClampResult(limit, True)
    return ClampResult(quantity, False)
