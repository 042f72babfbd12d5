"""Tests for cart snapshot storage."""

import json
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from shopcart.config import Config
from shopcart.exceptions import PersistenceError, RedisConnectionError, ValidationError
from shopcart.models import CartLine
from shopcart.snapshot_store import (
    MemorySnapshotStore,
    RedisSnapshotStore,
    dump_lines,
    get_snapshot_store,
    load_lines,
)

LINES = [
    CartLine(product_id="tee", title="T-Shirt", quantity=2, unit_price_snapshot=Decimal("100"), category="Apparel"),
    CartLine(product_id="cap", title="Cap", quantity=1, unit_price_snapshot=Decimal("199.99")),
]


class TestSnapshotFormat:
    def test_dump_shape(self) -> None:
        data = json.loads(dump_lines(LINES))
        assert data[0] == {
            "id": "tee",
            "title": "T-Shirt",
            "quantity": 2,
            "price": "100",
            "category": "Apparel",
        }

    def test_round_trip(self) -> None:
        assert load_lines(dump_lines(LINES)) == LINES

    def test_nothing_stored(self) -> None:
        assert load_lines(None) is None

    def test_invalid_entries_skipped(self) -> None:
        raw = json.dumps([
            {"id": "tee", "quantity": 2, "price": "100"},
            {"id": "bad", "quantity": 0, "price": "1"},
            {"quantity": 1, "price": "1"},
            {"id": "nan", "quantity": 1, "price": "abc"},
        ])
        lines = load_lines(raw)
        assert [line.product_id for line in lines] == ["tee"]

    def test_corrupt_json(self) -> None:
        with pytest.raises(ValidationError):
            load_lines("{not json")

    def test_not_an_array(self) -> None:
        with pytest.raises(ValidationError):
            load_lines('{"id": "tee"}')


class TestMemorySnapshotStore:
    def test_save_and_load(self) -> None:
        store = MemorySnapshotStore()
        store.save_snapshot("k", LINES)
        assert store.load_snapshot("k") == LINES

    def test_last_writer_wins(self) -> None:
        store = MemorySnapshotStore()
        store.save_snapshot("k", LINES)
        store.save_snapshot("k", LINES[:1])
        assert store.load_snapshot("k") == LINES[:1]

    def test_delete(self) -> None:
        store = MemorySnapshotStore()
        store.save_snapshot("k", LINES)
        store.delete_snapshot("k")
        assert store.load_snapshot("k") is None


class TestRedisSnapshotStore:
    def test_save_sets_json(self) -> None:
        client = MagicMock()
        store = RedisSnapshotStore(client_factory=lambda: client, ttl=60)
        store.save_snapshot("cart:1", LINES)
        key, payload = client.set.call_args.args
        assert key == "cart:1"
        assert json.loads(payload)[1]["price"] == "199.99"
        assert client.set.call_args.kwargs == {"ex": 60}

    def test_empty_cart_deletes_key(self) -> None:
        client = MagicMock()
        store = RedisSnapshotStore(client_factory=lambda: client)
        store.save_snapshot("cart:1", [])
        client.delete.assert_called_once_with("cart:1")
        client.set.assert_not_called()

    def test_load(self) -> None:
        client = MagicMock()
        client.get.return_value = dump_lines(LINES)
        store = RedisSnapshotStore(client_factory=lambda: client)
        assert store.load_snapshot("cart:1") == LINES

    def test_connection_failure_is_persistence_error(self) -> None:
        def unavailable():
            raise RedisConnectionError("Failed to connect to Redis")

        store = RedisSnapshotStore(client_factory=unavailable)
        with pytest.raises(PersistenceError):
            store.load_snapshot("cart:1")


class TestGetSnapshotStore:
    def test_memory_backend(self, monkeypatch) -> None:
        monkeypatch.setattr(Config, "CART_STORAGE_BACKEND", "memory")
        assert isinstance(get_snapshot_store(), MemorySnapshotStore)

    def test_redis_backend(self, monkeypatch) -> None:
        monkeypatch.setattr(Config, "CART_STORAGE_BACKEND", "redis")
        assert isinstance(get_snapshot_store(), RedisSnapshotStore)

    def test_unknown_backend(self, monkeypatch) -> None:
        monkeypatch.setattr(Config, "CART_STORAGE_BACKEND", "sqlite")
        with pytest.raises(PersistenceError):
            get_snapshot_store()

    def test_redis_backend_expires_snapshots(self, monkeypatch) -> None:
        monkeypatch.setattr(Config, "CART_STORAGE_BACKEND", "redis")
        monkeypatch.setattr(Config, "CART_TTL_SECONDS", 3600)
        assert get_snapshot_store().ttl == 3600

    def test_zero_ttl_keeps_snapshots(self, monkeypatch) -> None:
        monkeypatch.setattr(Config, "CART_STORAGE_BACKEND", "redis")
        monkeypatch.setattr(Config, "CART_TTL_SECONDS", 0)
        assert get_snapshot_store().ttl is None
