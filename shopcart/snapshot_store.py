"""
Key-value snapshot storage for committed carts.

A snapshot is a JSON array of {"id", "title", "quantity", "price", "category"}
objects. Prices are written as strings so Decimal values survive the trip.
"""
import json
import logging
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, List, Optional

from shopcart.config import Config
from shopcart.exceptions import PersistenceError, ValidationError
from shopcart.models import CartLine

logger = logging.getLogger(__name__)


def dump_lines(lines: List[CartLine]) -> str:
    return json.dumps(
        [
            {
                "id": line.product_id,
                "title": line.title,
                "quantity": line.quantity,
                "price": str(line.unit_price_snapshot),
                "category": line.category,
            }
            for line in lines
        ],
        ensure_ascii=False,
    )


def load_lines(raw: Optional[str]) -> Optional[List[CartLine]]:
    """
    Parse a stored snapshot. Returns None when nothing is stored.
    Entries that cannot be parsed are skipped with a warning.
    """
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Cart snapshot is not valid JSON: {e}")
    if not isinstance(data, list):
        raise ValidationError("Cart snapshot must be a JSON array")

    lines: List[CartLine] = []
    for entry in data:
        try:
            lines.append(CartLine(
                product_id=str(entry["id"]),
                title=entry.get("title") or "",
                quantity=int(entry["quantity"]),
                unit_price_snapshot=Decimal(str(entry["price"])),
                category=entry.get("category"),
            ))
        except (KeyError, TypeError, ValueError, AttributeError, InvalidOperation) as e:
            logger.warning(f"Skipping invalid cart snapshot entry {entry!r}: {e}")
            continue
    return lines


class SnapshotStore:
    """Persistence primitives used by CartStore"""

    def load_snapshot(self, key: str) -> Optional[List[CartLine]]:
        raise NotImplementedError

    def save_snapshot(self, key: str, lines: List[CartLine]) -> None:
        raise NotImplementedError

    def delete_snapshot(self, key: str) -> None:
        raise NotImplementedError


class MemorySnapshotStore(SnapshotStore):
    """Snapshots held in a process-local dict"""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def load_snapshot(self, key: str) -> Optional[List[CartLine]]:
        return load_lines(self._data.get(key))

    def save_snapshot(self, key: str, lines: List[CartLine]) -> None:
        self._data[key] = dump_lines(lines)

    def delete_snapshot(self, key: str) -> None:
        self._data.pop(key, None)


class RedisSnapshotStore(SnapshotStore):
    """Snapshots stored as a single Redis string per cart"""

    def __init__(self, client_factory: Optional[Callable] = None, ttl: Optional[int] = None):
        if client_factory is None:
            from shopcart.redis_client import get_redis_client
            client_factory = get_redis_client
        self._client_factory = client_factory
        self.ttl = ttl

    @property
    def redis(self):
        # Connects on first use
        return self._client_factory()

    def load_snapshot(self, key: str) -> Optional[List[CartLine]]:
        return load_lines(self.redis.get(key))

    def save_snapshot(self, key: str, lines: List[CartLine]) -> None:
        if not lines:
            self.redis.delete(key)
            return
        self.redis.set(key, dump_lines(lines), ex=self.ttl)

    def delete_snapshot(self, key: str) -> None:
        self.redis.delete(key)


def get_snapshot_store() -> SnapshotStore:
    """Build the store selected by CART_STORAGE_BACKEND"""
    backend = Config.CART_STORAGE_BACKEND.lower()
    if backend == "redis":
        return RedisSnapshotStore(ttl=Config.CART_TTL_SECONDS or None)
    if backend == "memory":
        return MemorySnapshotStore()
    raise PersistenceError(f"Unknown CART_STORAGE_BACKEND: {Config.CART_STORAGE_BACKEND}")
