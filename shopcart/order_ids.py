"""
Human-readable order identifiers: PREFIX-NNN-DATE.
"""
from datetime import datetime
from typing import Callable, Optional

from shopcart.models import CheckoutConfig

DATE_LAYOUTS = {
    "YYYYMMDD": "%Y%m%d",
    "DDMMYYYY": "%d%m%Y",
}


class OrderCounter:
    """Source of order numbers; each call to next() consumes one"""

    def next(self) -> int:
        raise NotImplementedError


class InMemoryOrderCounter(OrderCounter):
    """Per-process counter. Numbering restarts when the process does."""

    def __init__(self, start: int = 1):
        self._value = start

    def next(self) -> int:
        value = self._value
        self._value += 1
        return value


class RedisOrderCounter(OrderCounter):
    """Counter kept in Redis so numbering survives restarts"""

    def __init__(self, client, key: str, start: int = 1):
        self.redis = client
        self.key = key
        self.start = start

    def next(self) -> int:
        # INCR starts from 1 on a missing key
        return self.redis.incr(self.key) + self.start - 1


class OrderIdGenerator:
    def __init__(
        self,
        prefix: str = "SHOP",
        counter: Optional[OrderCounter] = None,
        date_format: str = "YYYYMMDD",
        clock: Callable[[], datetime] = datetime.now,
    ):
        if date_format not in DATE_LAYOUTS:
            raise ValueError(f"Unsupported order date format: {date_format}")
        self.prefix = prefix
        self.counter = counter or InMemoryOrderCounter()
        self.date_format = date_format
        self.clock = clock

    @classmethod
    def from_config(
        cls,
        config: CheckoutConfig,
        counter: Optional[OrderCounter] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> "OrderIdGenerator":
        return cls(
            prefix=config.order_prefix,
            counter=counter or InMemoryOrderCounter(config.order_start_number),
            date_format=config.order_date_format,
            clock=clock,
        )

    def generate(self) -> str:
        number = str(self.counter.next()).zfill(3)
        date_str = self.clock().strftime(DATE_LAYOUTS[self.date_format])
        return f"{self.prefix}-{number}-{date_str}"
