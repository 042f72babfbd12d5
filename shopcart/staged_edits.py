"""
Pending quantities for cart lines that are being edited but not yet saved.
"""
from typing import Dict, Iterator, List, Optional, Tuple


class StagedEditSet:
    """
    Explicit map of product_id -> pending quantity.

    An entry exists only while its line is being edited; callers insert with
    ``stage`` and remove with ``discard`` or ``clear``.
    """

    def __init__(self):
        self._pending: Dict[str, int] = {}

    def stage(self, product_id: str, quantity: int) -> None:
        if quantity < 0:
            raise ValueError("Staged quantity cannot be negative")
        self._pending[product_id] = quantity

    def get(self, product_id: str) -> Optional[int]:
        return self._pending.get(product_id)

    def discard(self, product_id: str) -> bool:
        """Remove an entry; returns whether one existed"""
        return self._pending.pop(product_id, None) is not None

    def clear(self) -> int:
        count = len(self._pending)
        self._pending.clear()
        return count

    def items(self) -> List[Tuple[str, int]]:
        return list(self._pending.items())

    def snapshot(self) -> Dict[str, int]:
        return dict(self._pending)

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._pending))
