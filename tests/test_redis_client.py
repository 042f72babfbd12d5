"""Tests for the Redis client wrapper."""

from unittest.mock import MagicMock, patch

import pytest
from redis.exceptions import ConnectionError, ResponseError

from shopcart.exceptions import RedisConnectionError
from shopcart.redis_client import RedisClient


@pytest.fixture
def fake_redis():
    with patch("shopcart.redis_client.redis.ConnectionPool") as pool_cls, \
            patch("shopcart.redis_client.redis.Redis") as redis_cls, \
            patch("shopcart.redis_client.time.sleep"):
        pool_cls.from_url.return_value = MagicMock()
        client = MagicMock()
        redis_cls.return_value = client
        yield pool_cls, client


class TestRedisClient:
    def test_plain_url(self, fake_redis) -> None:
        pool_cls, client = fake_redis
        RedisClient("redis://localhost:6379/0")
        assert "ssl_cert_reqs" not in pool_cls.from_url.call_args.kwargs
        client.ping.assert_called_once()

    def test_tls_url(self, fake_redis) -> None:
        pool_cls, _ = fake_redis
        RedisClient("rediss://:token@cache.example:6379/0")
        assert pool_cls.from_url.call_args.kwargs["ssl_cert_reqs"] is None

    def test_connect_failure(self, fake_redis) -> None:
        _, client = fake_redis
        client.ping.side_effect = ConnectionError("refused")
        with pytest.raises(RedisConnectionError):
            RedisClient("redis://localhost:6379/0")

    def test_retries_then_succeeds(self, fake_redis) -> None:
        _, client = fake_redis
        client.get.side_effect = [ConnectionError("reset"), "[]"]
        wrapper = RedisClient("redis://localhost:6379/0")
        assert wrapper.get("k") == "[]"
        assert client.get.call_count == 2

    def test_gives_up_after_retries(self, fake_redis) -> None:
        _, client = fake_redis
        client.incr.side_effect = ConnectionError("down")
        wrapper = RedisClient("redis://localhost:6379/0")
        with pytest.raises(RedisConnectionError, match="after 3 retries"):
            wrapper.incr("counter")

    def test_non_retryable_error(self, fake_redis) -> None:
        _, client = fake_redis
        client.set.side_effect = ResponseError("WRONGTYPE")
        wrapper = RedisClient("redis://localhost:6379/0")
        with pytest.raises(RedisConnectionError, match="Redis error"):
            wrapper.set("k", "v")
        assert client.set.call_count == 1
