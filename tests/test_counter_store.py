"""Unit tests for counter store adapters."""

from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest

from app.adapters.rate_limit.factory import create_counter_store
from app.adapters.rate_limit.in_memory import InMemoryCounterStore
from app.adapters.rate_limit.redis_store import RedisCounterStore
from app.core.errors import ValidationAppError


class TestInMemoryCounterStore:
    @pytest.mark.asyncio
    async def test_absent_key_reads_none(self) -> None:
        store = InMemoryCounterStore(clock=Mock(return_value=1000.0))

        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_increment_creates_and_adds(self) -> None:
        store = InMemoryCounterStore(clock=Mock(return_value=1000.0))

        assert await store.increment("k") == 1
        assert await store.increment("k") == 2
        assert await store.get("k") == 2

    @pytest.mark.asyncio
    async def test_expire_missing_key_returns_false(self) -> None:
        store = InMemoryCounterStore(clock=Mock(return_value=1000.0))

        assert await store.expire("k", 10) is False
        assert store.keys() == []

    @pytest.mark.asyncio
    async def test_key_without_ttl_never_expires(self) -> None:
        clock = Mock(return_value=1000.0)
        store = InMemoryCounterStore(clock=clock)
        await store.increment("k")

        clock.return_value = 1_000_000.0
        assert await store.get("k") == 1

    @pytest.mark.asyncio
    async def test_expire_sets_ttl(self) -> None:
        clock = Mock(return_value=1000.0)
        store = InMemoryCounterStore(clock=clock)
        await store.increment("k")

        assert await store.expire("k", 59) is True

        clock.return_value = 1058.0
        assert await store.get("k") == 1
        clock.return_value = 1059.0
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_expire_refreshes_ttl(self) -> None:
        clock = Mock(return_value=1000.0)
        store = InMemoryCounterStore(clock=clock)

        await store.increment_with_expiry("k", 10)
        clock.return_value = 1008.0
        await store.increment_with_expiry("k", 10)

        clock.return_value = 1015.0
        assert await store.get("k") == 2

    @pytest.mark.asyncio
    async def test_increment_after_expiry_starts_over(self) -> None:
        clock = Mock(return_value=1000.0)
        store = InMemoryCounterStore(clock=clock)
        await store.increment_with_expiry("k", 10)
        await store.increment_with_expiry("k", 10)

        clock.return_value = 1010.0
        assert await store.increment_with_expiry("k", 10) == 1

    @pytest.mark.asyncio
    async def test_keys_are_isolated(self) -> None:
        store = InMemoryCounterStore(clock=Mock(return_value=1000.0))

        await store.increment_with_expiry("a", 10)
        await store.increment_with_expiry("a", 10)
        await store.increment_with_expiry("b", 10)

        assert await store.get("a") == 2
        assert await store.get("b") == 1
        assert sorted(store.keys()) == ["a", "b"]

    @pytest.mark.asyncio
    async def test_clear(self) -> None:
        store = InMemoryCounterStore(clock=Mock(return_value=1000.0))
        await store.increment("a")

        store.clear()

        assert store.keys() == []
        assert await store.ping() is True


class TestRedisCounterStore:
    @pytest.mark.asyncio
    async def test_get_parses_integer(self) -> None:
        client = MagicMock()
        client.get = AsyncMock(return_value="7")
        store = RedisCounterStore(client)

        assert await store.get("local:1.2.3.4:1") == 7
        client.get.assert_awaited_once_with("local:1.2.3.4:1")

    @pytest.mark.asyncio
    async def test_get_absent(self) -> None:
        client = MagicMock()
        client.get = AsyncMock(return_value=None)

        assert await RedisCounterStore(client).get("k") is None

    @pytest.mark.asyncio
    async def test_increment_and_expire(self) -> None:
        client = MagicMock()
        client.incr = AsyncMock(return_value=3)
        client.expire = AsyncMock(return_value=1)
        store = RedisCounterStore(client)

        assert await store.increment("k") == 3
        assert await store.expire("k", 59) is True
        client.expire.assert_awaited_once_with("k", 59)

    @pytest.mark.asyncio
    async def test_increment_with_expiry_uses_transaction(self) -> None:
        pipe = MagicMock()
        pipe.execute = AsyncMock(return_value=[4, True])
        pipeline_cm = MagicMock()
        pipeline_cm.__aenter__.return_value = pipe
        client = MagicMock()
        client.pipeline = MagicMock(return_value=pipeline_cm)

        count = await RedisCounterStore(client).increment_with_expiry("global-day:19675", 86399)

        assert count == 4
        client.pipeline.assert_called_once_with(transaction=True)
        pipe.incr.assert_called_once_with("global-day:19675")
        pipe.expire.assert_called_once_with("global-day:19675", 86399)
        pipe.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_client_errors_propagate(self) -> None:
        client = MagicMock()
        client.get = AsyncMock(side_effect=ConnectionError("refused"))

        with pytest.raises(ConnectionError):
            await RedisCounterStore(client).get("k")

    @pytest.mark.asyncio
    async def test_ping_and_close(self) -> None:
        client = MagicMock()
        client.ping = AsyncMock(return_value=True)
        client.aclose = AsyncMock()
        store = RedisCounterStore(client)

        assert await store.ping() is True
        await store.close()
        client.aclose.assert_awaited_once()


class TestCounterStoreFactory:
    def test_memory_backend(self) -> None:
        with patch("app.adapters.rate_limit.factory.settings") as mock_settings:
            mock_settings.store.backend = "memory"
            assert isinstance(create_counter_store(), InMemoryCounterStore)

    def test_redis_backend(self) -> None:
        with patch("app.adapters.rate_limit.factory.settings") as mock_settings, patch(
            "app.adapters.rate_limit.factory.RedisCounterStore"
        ) as mock_store_cls:
            mock_settings.store.backend = "Redis"
            mock_settings.store.redis_url = "redis://cache:6379/1"
            mock_settings.store.socket_timeout_seconds = 2.0

            create_counter_store()

            mock_store_cls.from_url.assert_called_once_with("redis://cache:6379/1", socket_timeout=2.0)

    def test_redis_backend_requires_url(self) -> None:
        with patch("app.adapters.rate_limit.factory.settings") as mock_settings:
            mock_settings.store.backend = "redis"
            mock_settings.store.redis_url = ""

            with pytest.raises(ValidationAppError) as exc_info:
                create_counter_store()
            assert exc_info.value.code == "store_missing_redis_url"

    def test_unknown_backend(self) -> None:
        with patch("app.adapters.rate_limit.factory.settings") as mock_settings:
            mock_settings.store.backend = "memcached"

            with pytest.raises(ValidationAppError) as exc_info:
                create_counter_store()
            assert exc_info.value.code == "store_unknown_backend"
