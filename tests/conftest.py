"""Shared pytest fixtures for the cart engine tests."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from shopcart.callbacks import CartCallbacks
from shopcart.cart_service import CartStore
from shopcart.catalog import ProductCatalog
from shopcart.models import CatalogItem
from shopcart.snapshot_store import MemorySnapshotStore


class Recorder:
    """Collects callback invocations as (name, args) tuples."""

    def __init__(self) -> None:
        self.events: list[tuple[str, tuple]] = []

    def hook(self, name: str):
        def _record(*args):
            self.events.append((name, args))
        return _record

    def named(self, name: str) -> list[tuple]:
        return [args for event, args in self.events if event == name]

    def callbacks(self) -> CartCallbacks:
        return CartCallbacks(
            on_cart_changed=self.hook("cart_changed"),
            on_unsaved_changes=self.hook("unsaved_changes"),
            on_stock_warning=self.hook("stock_warning"),
            on_validation_error=self.hook("validation_error"),
            on_order_placed=self.hook("order_placed"),
            on_notification=self.hook("notification"),
        )


@pytest.fixture
def products() -> list[CatalogItem]:
    return [
        CatalogItem(id="tee", title="T-Shirt", unit_price=Decimal("100"), stock=5, category="Apparel"),
        CatalogItem(id="mug", title="Mug", unit_price=Decimal("250"), category="Kitchen"),
        CatalogItem(id="cap", title="Cap", unit_price=Decimal("199.99"), stock=2),
        CatalogItem(id="gone", title="Sold Out", unit_price=Decimal("10"), stock=0),
    ]


@pytest.fixture
def catalog(products: list[CatalogItem]) -> ProductCatalog:
    return ProductCatalog(products)


@pytest.fixture
def store() -> MemorySnapshotStore:
    return MemorySnapshotStore()


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def cart(catalog: ProductCatalog, store: MemorySnapshotStore, recorder: Recorder) -> CartStore:
    return CartStore(catalog, store, snapshot_key="test-cart", callbacks=recorder.callbacks())


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2025, 1, 15, 10, 30)
