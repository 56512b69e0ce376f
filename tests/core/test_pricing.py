# tests/core/test_pricing.py
"""
Тесты для тарифов и расчёта стоимости.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from src.core.pricing.service import (
    PRICING_CACHE_KEY,
    PricingConfig,
    PricingConfigProvider,
    calculate_cost,
)

ARGENTINA = PricingConfig(base_rate_per_km=15, minimum_charge=50, worker_rate=75)


class TestCalculateCost:
    """Тесты формулы стоимости."""

    def test_scenario(self) -> None:
        """ceil(44.92 * 15) = 674, плюс два грузчика по 75."""
        assert calculate_cost(44.92, 2, ARGENTINA) == 824

    def test_distance_rounded_up_before_workers(self) -> None:
        config = PricingConfig(base_rate_per_km=3, minimum_charge=0, worker_rate=2)
        assert calculate_cost(1.5, 1, config) == 7

    def test_minimum_charge(self) -> None:
        assert calculate_cost(1.0, 0, ARGENTINA) == 50

    def test_zero_distance(self) -> None:
        assert calculate_cost(0.0, 1, ARGENTINA) == 75

    def test_returns_int(self) -> None:
        config = PricingConfig(base_rate_per_km=1, minimum_charge=10.5, worker_rate=0)
        assert calculate_cost(1, 0, config) == 11


RATE_TABLES = [
    ARGENTINA,
    PricingConfig(),
    PricingConfig(base_rate_per_km=0.5, minimum_charge=1000, worker_rate=10),
    PricingConfig(base_rate_per_km=7.3, minimum_charge=12.5, worker_rate=0),
]


class TestCostProperties:
    """Стоимость не ниже минимальной на сетке входов."""

    @pytest.mark.parametrize("config", RATE_TABLES)
    @pytest.mark.parametrize("workers", [0, 1, 2, 5, 10])
    @pytest.mark.parametrize("distance", [0.0, 0.01, 0.99, 1.44, 44.92, 100.0, 20015.09])
    def test_never_below_minimum(self, config: PricingConfig, workers: int, distance: float) -> None:
        cost = calculate_cost(distance, workers, config)

        assert isinstance(cost, int)
        assert cost >= config.minimum_charge

    @pytest.mark.parametrize("config", RATE_TABLES)
    def test_grows_with_workers(self, config: PricingConfig) -> None:
        assert calculate_cost(44.92, 3, config) >= calculate_cost(44.92, 2, config)


class TestPricingConfigProvider:
    """Тесты загрузки тарифов."""

    @pytest.mark.asyncio
    async def test_loads_rows_and_caches(self, mock_db, mock_redis) -> None:
        mock_db.fetch.return_value = [
            {"key": "pricing_base_rate_per_km", "value": "15"},
            {"key": "pricing_minimum_charge", "value": "50"},
            {"key": "pricing_worker_rate", "value": "75"},
        ]
        provider = PricingConfigProvider(mock_db, mock_redis, ttl=60, prefix="pricing_")

        config = await provider.load()

        assert config == ARGENTINA
        mock_db.fetch.assert_awaited_once()
        mock_redis.set_model.assert_awaited_once_with(PRICING_CACHE_KEY, config, ttl=60)

    @pytest.mark.asyncio
    async def test_missing_rows_use_defaults(self, mock_db) -> None:
        provider = PricingConfigProvider(mock_db, None, ttl=60, prefix="pricing_")

        config = await provider.load()

        assert config == PricingConfig.defaults()

    @pytest.mark.asyncio
    async def test_non_numeric_value_ignored(self, mock_db) -> None:
        mock_db.fetch.return_value = [
            {"key": "pricing_base_rate_per_km", "value": "много"},
            {"key": "pricing_worker_rate", "value": "75"},
        ]
        provider = PricingConfigProvider(mock_db, None, ttl=60, prefix="pricing_")

        config = await provider.load()

        assert config.base_rate_per_km == PricingConfig.defaults().base_rate_per_km
        assert config.worker_rate == 75

    @pytest.mark.asyncio
    async def test_cache_hit_skips_db(self, mock_db, mock_redis) -> None:
        mock_redis.get_model.return_value = ARGENTINA
        provider = PricingConfigProvider(mock_db, mock_redis, ttl=60, prefix="pricing_")

        assert await provider.load() == ARGENTINA
        mock_db.fetch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cache_failure_falls_back_to_db(self, mock_db, mock_redis) -> None:
        mock_redis.get_model.side_effect = RedisConnectionError("down")
        mock_redis.set_model.side_effect = RedisConnectionError("down")
        provider = PricingConfigProvider(mock_db, mock_redis, ttl=60, prefix="pricing_")

        config = await provider.load()

        assert config == PricingConfig.defaults()
        mock_db.fetch.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_invalidate(self, mock_db, mock_redis) -> None:
        provider = PricingConfigProvider(mock_db, mock_redis, ttl=60, prefix="pricing_")

        await provider.invalidate()

        mock_redis.delete.assert_awaited_once_with(PRICING_CACHE_KEY)
