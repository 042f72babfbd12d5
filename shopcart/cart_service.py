"""
Cart store with staged quantity editing.

Committed lines are what gets persisted and priced. While a user adjusts a
line, the pending quantity lives in a StagedEditSet until it is saved,
cancelled, or reaches zero (which removes the line straight away).
"""
import hashlib
import logging
import re
from collections import OrderedDict
from decimal import Decimal
from typing import Dict, List, Optional, Union

from shopcart.callbacks import CartCallbacks
from shopcart.catalog import ProductCatalog
from shopcart.exceptions import (
    PersistenceError,
    ProductNotFoundError,
    ValidationError,
)
from shopcart.models import CartLine, CartOperationResult, CatalogItem
from shopcart.snapshot_store import SnapshotStore
from shopcart.staged_edits import StagedEditSet
from shopcart.stock_policy import clamp

logger = logging.getLogger(__name__)

NEGATIVE_QUANTITY = "Quantity cannot be negative"
INVALID_QUANTITY = "Please enter a valid quantity"

LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


def parse_quantity(value: Union[int, str]) -> int:
    """
    Read the leading integer of typed input ("3 items" -> 3, "2.5" -> 2).
    Returns -1 when there is none.
    """
    if isinstance(value, int):
        return value
    match = LEADING_INT_RE.match(str(value))
    return int(match.group(1)) if match else -1


class CartStore:
    """Committed cart plus the staged-edit overlay for one shopper"""

    def __init__(
        self,
        catalog: ProductCatalog,
        store: SnapshotStore,
        snapshot_key: str = "shopcart_items",
        callbacks: Optional[CartCallbacks] = None,
    ):
        self.catalog = catalog
        self.store = store
        self.snapshot_key = snapshot_key
        self.callbacks = callbacks or CartCallbacks()
        self._lines: "OrderedDict[str, CartLine]" = OrderedDict()
        self.staged = StagedEditSet()
        self.load()

    def _hashed_key(self) -> str:
        """Hash snapshot key for logging (no PII)"""
        return hashlib.sha256(self.snapshot_key.encode()).hexdigest()[:8]

    def _require_product(self, product_id: str) -> CatalogItem:
        product = self.catalog.get_product(product_id)
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    def _require_line(self, product_id: str) -> CartLine:
        line = self._lines.get(product_id)
        if line is None:
            raise ProductNotFoundError(product_id, where="cart")
        return line

    def _stock_for(self, product_id: str) -> Optional[int]:
        return self._require_product(product_id).stock

    def _warn(self, message: str) -> None:
        self.callbacks.notify("warning", message)

    def _changed(self) -> None:
        """Persist, then tell listeners about the committed cart and pending edits"""
        self.save()
        self.callbacks.cart_changed(self.get_lines(), self.get_total_value(), self.get_total_quantity())
        self._unsaved_changed()

    def _unsaved_changed(self) -> None:
        self.callbacks.unsaved_changes(self.has_unsaved_changes(), self.get_unsaved_count())

    def _stock_warnings(self, product_id: str, quantity: int, messages: List[str]) -> None:
        for message in messages:
            self.callbacks.stock_warning(product_id, quantity)
            self._warn(message)

    # Committed cart

    def add_to_cart(self, product_id: str, quantity: int = 1) -> CartOperationResult:
        """
        Add a product or increase an existing line, clamped to stock.

        Raises:
            ProductNotFoundError: product id unknown to the catalog
        """
        product = self._require_product(product_id)

        if quantity < 1:
            self._warn(INVALID_QUANTITY)
            return CartOperationResult(
                ok=False, action="add", product_id=product_id, warnings=[INVALID_QUANTITY]
            )

        if product.stock is not None and product.stock <= 0:
            message = "Product is out of stock"
            self._warn(message)
            return CartOperationResult(
                ok=False, action="add", product_id=product_id, quantity=0, warnings=[message]
            )

        existing = self._lines.get(product_id)
        previous = existing.quantity if existing else 0
        result = clamp(previous + quantity, product.stock)
        warnings = [f"Maximum stock reached ({product.stock} available)"] if result.clamped else []

        if existing:
            existing.quantity = result.quantity
            staged = self.staged.get(product_id)
            if staged is not None:
                # Pending edit moves by the same increment
                rebased = clamp(staged + result.quantity - previous, product.stock)
                self.staged.stage(product_id, rebased.quantity)
        else:
            # Price is snapshotted here and never re-read while the line exists
            self._lines[product_id] = CartLine(
                product_id=product.id,
                title=product.title,
                quantity=result.quantity,
                unit_price_snapshot=product.unit_price,
                category=product.category,
            )

        logger.debug(f"Cart {self._hashed_key()}: {product_id} -> {result.quantity}")
        self._changed()
        self._stock_warnings(product_id, result.quantity, warnings)
        self.callbacks.notify("success", f"{product.title or product_id} added to cart!")
        return CartOperationResult(
            ok=True, action="add", product_id=product_id, quantity=result.quantity, warnings=warnings
        )

    def remove_from_cart(self, product_id: str) -> CartOperationResult:
        """Delete a line and any staged edit for it. Absent lines are a no-op."""
        removed = self._lines.pop(product_id, None)
        dropped_stage = self.staged.discard(product_id)
        if removed is None:
            if dropped_stage:
                self._unsaved_changed()
            return CartOperationResult(ok=True, action="noop", product_id=product_id)

        self._changed()
        self.callbacks.notify("info", "Item removed from cart")
        return CartOperationResult(ok=True, action="remove", product_id=product_id, quantity=0)

    def clear(self) -> CartOperationResult:
        """Empty the cart and drop every staged edit"""
        self._lines.clear()
        self.staged.clear()
        self._changed()
        return CartOperationResult(ok=True, action="clear")

    def get_lines(self) -> List[CartLine]:
        return [line.model_copy() for line in self._lines.values()]

    def get_line(self, product_id: str) -> Optional[CartLine]:
        line = self._lines.get(product_id)
        return line.model_copy() if line else None

    def get_total_quantity(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def get_total_value(self) -> Decimal:
        return sum((line.line_total for line in self._lines.values()), Decimal("0"))

    def get_display_quantity(self, product_id: str) -> int:
        """Staged quantity while editing, otherwise the committed one"""
        line = self._require_line(product_id)
        staged = self.staged.get(product_id)
        return line.quantity if staged is None else staged

    def is_empty(self) -> bool:
        return not self._lines

    # Persistence

    def save(self) -> bool:
        """Write the committed cart. Staged edits are never persisted."""
        try:
            self.store.save_snapshot(self.snapshot_key, list(self._lines.values()))
            return True
        except PersistenceError as e:
            logger.warning(f"Could not save cart {self._hashed_key()}, continuing in memory: {e}")
            return False

    def load(self) -> bool:
        """Restore the committed cart from the snapshot, discarding staged edits"""
        self.staged.clear()
        try:
            lines = self.store.load_snapshot(self.snapshot_key)
        except (PersistenceError, ValidationError) as e:
            logger.warning(f"Could not load cart {self._hashed_key()}, starting empty: {e}")
            return False

        self._lines.clear()
        for line in lines or []:
            if line.product_id in self._lines:
                logger.warning(f"Duplicate line in cart snapshot, keeping first: {line.product_id}")
                continue
            self._lines[line.product_id] = line
        return lines is not None

    # Staged edits

    def has_unsaved_changes(self) -> bool:
        return len(self.staged) > 0

    def get_unsaved_count(self) -> int:
        return len(self.staged)

    def get_staged(self, product_id: str) -> Optional[int]:
        return self.staged.get(product_id)

    def _apply_stage(self, product_id: str, quantity: int, action: str) -> CartOperationResult:
        """Stage a non-negative quantity: zero removes the line, the rest is clamped to stock"""
        if quantity == 0:
            result = self.remove_from_cart(product_id)
            return result.model_copy(update={"action": "auto_remove"})

        stock = self._stock_for(product_id)
        clamped = clamp(quantity, stock)
        warnings = [f"Only {stock} items available"] if clamped.clamped else []

        if clamped.quantity == 0:
            # Stock ran out after the line was added
            result = self.remove_from_cart(product_id)
            self._stock_warnings(product_id, clamped.quantity, warnings)
            return result.model_copy(update={"action": "auto_remove", "warnings": warnings})

        self.staged.stage(product_id, clamped.quantity)
        self._unsaved_changed()
        self._stock_warnings(product_id, clamped.quantity, warnings)
        return CartOperationResult(
            ok=True, action=action, product_id=product_id, quantity=clamped.quantity, warnings=warnings
        )

    def stage_delta(self, product_id: str, delta: int) -> CartOperationResult:
        """
        Step the pending quantity by delta, seeding it from the committed line.

        Raises:
            ProductNotFoundError: no committed line for product_id
        """
        line = self._require_line(product_id)
        current = self.staged.get(product_id)
        if current is None:
            current = line.quantity

        new_quantity = current + delta
        if new_quantity < 0:
            self._warn(NEGATIVE_QUANTITY)
            return CartOperationResult(
                ok=False, action="stage", product_id=product_id, quantity=current,
                warnings=[NEGATIVE_QUANTITY],
            )
        return self._apply_stage(product_id, new_quantity, "stage")

    def stage_absolute(self, product_id: str, value: Union[int, str]) -> CartOperationResult:
        """
        Stage a typed quantity. Unparseable or negative input is rejected.

        Raises:
            ProductNotFoundError: no committed line for product_id
        """
        self._require_line(product_id)
        quantity = parse_quantity(value)

        if quantity < 0:
            self._warn(INVALID_QUANTITY)
            return CartOperationResult(
                ok=False, action="stage", product_id=product_id,
                quantity=self.get_display_quantity(product_id), warnings=[INVALID_QUANTITY],
            )
        return self._apply_stage(product_id, quantity, "stage")

    def save_quantity(self, product_id: str) -> CartOperationResult:
        """Commit the staged quantity for one line"""
        staged = self.staged.get(product_id)
        if staged is None:
            self.callbacks.notify("info", "No changes to save")
            return CartOperationResult(ok=True, action="noop", product_id=product_id)

        if staged == 0:
            # Removal needs an explicit decision: remove_from_cart or cancel_quantity
            return CartOperationResult(
                ok=False, action="confirm_removal", product_id=product_id, quantity=0,
                warnings=["Remove this item from cart?"],
            )

        line = self._lines.get(product_id)
        if line is None:
            self.staged.discard(product_id)
            self._unsaved_changed()
            return CartOperationResult(ok=True, action="noop", product_id=product_id)

        line.quantity = staged
        self.staged.discard(product_id)
        self._changed()
        self.callbacks.notify("success", "Quantity updated successfully")
        return CartOperationResult(ok=True, action="save", product_id=product_id, quantity=staged)

    def cancel_quantity(self, product_id: str) -> CartOperationResult:
        """Discard the staged quantity for one line"""
        if not self.staged.discard(product_id):
            return CartOperationResult(ok=True, action="noop", product_id=product_id)
        self._unsaved_changed()
        self.callbacks.notify("info", "Changes cancelled")
        line = self._lines.get(product_id)
        return CartOperationResult(
            ok=True, action="cancel", product_id=product_id, quantity=line.quantity if line else None
        )

    def save_all(self) -> Dict[str, List[str]]:
        """
        Commit every staged edit as one batch.

        Returns:
            Dict with the product ids that were "updated" and "removed"
        """
        if not self.has_unsaved_changes():
            self.callbacks.notify("info", "No changes to save")
            return {"updated": [], "removed": []}

        to_remove = [pid for pid, quantity in self.staged.items() if quantity == 0]
        to_update = [(pid, quantity) for pid, quantity in self.staged.items() if quantity > 0]

        for product_id in to_remove:
            self._lines.pop(product_id, None)
        updated = []
        for product_id, quantity in to_update:
            line = self._lines.get(product_id)
            if line is not None:
                line.quantity = quantity
                updated.append(product_id)

        self.staged.clear()
        self._changed()
        self.callbacks.notify("success", "All changes saved")
        return {"updated": updated, "removed": to_remove}

    def cancel_all(self) -> int:
        """Discard every staged edit; returns how many were dropped"""
        dropped = self.staged.clear()
        if dropped:
            self._unsaved_changed()
            self.callbacks.notify("info", "All changes cancelled")
        return dropped
