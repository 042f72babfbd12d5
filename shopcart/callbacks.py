"""
Notification hooks the engine calls after state changes.
"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable, List, Optional


@dataclass
class CartCallbacks:
    """Optional presentation-layer hooks; any of them may be left unset"""

    on_cart_changed: Optional[Callable[[List[Any], Decimal, int], None]] = None
    on_unsaved_changes: Optional[Callable[[bool, int], None]] = None
    on_stock_warning: Optional[Callable[[str, int], None]] = None
    on_validation_error: Optional[Callable[[List[str]], None]] = None
    on_order_placed: Optional[Callable[[Any], None]] = None
    on_notification: Optional[Callable[[str, str], None]] = None

    def cart_changed(self, lines: List[Any], total: Decimal, count: int) -> None:
        if self.on_cart_changed:
            self.on_cart_changed(lines, total, count)

    def unsaved_changes(self, has_unsaved: bool, count: int) -> None:
        if self.on_unsaved_changes:
            self.on_unsaved_changes(has_unsaved, count)

    def stock_warning(self, product_id: str, clamped_to: int) -> None:
        if self.on_stock_warning:
            self.on_stock_warning(product_id, clamped_to)

    def validation_error(self, errors: List[str]) -> None:
        if self.on_validation_error:
            self.on_validation_error(list(errors))

    def order_placed(self, order: Any) -> None:
        if self.on_order_placed:
            self.on_order_placed(order)

    def notify(self, level: str, message: str) -> None:
        if self.on_notification:
            self.on_notification(level, message)
