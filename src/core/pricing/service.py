# src/core/pricing/service.py
"""
Тарифы и расчёт стоимости в кредитах.

Таблица тарифов хранится в system_config (ключи pricing_*), загружается
одним запросом на операцию подбора и кэшируется в Redis.
"""

from __future__ import annotations

import math
from typing import Optional

from pydantic import BaseModel, Field
from redis.exceptions import RedisError

from src.common.constants import TypeMsg
from src.common.logger import log_info, log_warning
from src.infra.database import DatabaseManager
from src.infra.redis_client import RedisClient

PRICING_CACHE_KEY = "pricing:config"

KEY_BASE_RATE = "pricing_base_rate_per_km"
KEY_MINIMUM_CHARGE = "pricing_minimum_charge"
KEY_WORKER_RATE = "pricing_worker_rate"


class PricingConfig(BaseModel):
    """Тарифная таблица."""
    base_rate_per_km: float = Field(1.0, ge=0, description="Кредиты за километр")
    minimum_charge: float = Field(5.0, ge=0, description="Минимальная стоимость")
    worker_rate: float = Field(50.0, ge=0, description="Кредиты за грузчика")

    @classmethod
    def defaults(cls) -> "PricingConfig":
        """Тарифы по умолчанию из настроек."""
        from src.config import settings
        return cls(
            base_rate_per_km=settings.pricing.DEFAULT_BASE_RATE_PER_KM,
            minimum_charge=settings.pricing.DEFAULT_MINIMUM_CHARGE,
            worker_rate=settings.pricing.DEFAULT_WORKER_RATE,
        )


def calculate_cost(distance_km: float, workers_count: int, config: PricingConfig) -> int:
    """
    Стоимость поездки в кредитах.

    cost = max(ceil(distance * base_rate) + workers * worker_rate, minimum_charge)

    Стоимость расстояния округляется вверх до прибавления грузчиков.

    Args:
        distance_km: Полный путь чартера (км)
        workers_count: Количество грузчиков
        config: Тарифная таблица

    Returns:
        Целое количество кредитов
    """
    distance_cost = math.ceil(distance_km * config.base_rate_per_km)
    worker_cost = workers_count * config.worker_rate
    total = max(distance_cost + worker_cost, config.minimum_charge)
    # Кредиты целочисленные; при целых тарифах ceil ничего не меняет
    return int(math.ceil(total))


class PricingConfigProvider:
    """
    Загрузчик тарифной таблицы.
    Вызывающий код загружает таблицу один раз на операцию и передаёт её
    в calculate_cost для каждого кандидата.
    """

    def __init__(
        self,
        db: DatabaseManager,
        redis: Optional[RedisClient] = None,
        ttl: int | None = None,
        prefix: str | None = None,
    ) -> None:
        """
        Args:
            db: Менеджер базы данных
            redis: Клиент Redis (None — без кэша)
            ttl: Время жизни кэша в секундах
            prefix: Префикс ключей тарифов
        """
        from src.config import settings

        self._db = db
        self._redis = redis
        self._ttl = ttl if ttl is not None else settings.redis_ttl.PRICING_CONFIG_TTL
        self._prefix = prefix or settings.pricing.PRICING_CONFIG_PREFIX

    async def load(self) -> PricingConfig:
        """
        Возвращает тарифную таблицу: из кэша или одним запросом к БД.
        Отсутствующие или нечисловые строки заменяются значениями по умолчанию.
        """
        cached = await self._read_cache()
        if cached is not None:
            return cached

        rows = await self._db.fetch(
            "SELECT key, value FROM system_config WHERE key LIKE $1",
            f"{self._prefix}%",
        )

        config = PricingConfig.defaults()
        values = config.model_dump()
        fields = {
            KEY_BASE_RATE: "base_rate_per_km",
            KEY_MINIMUM_CHARGE: "minimum_charge",
            KEY_WORKER_RATE: "worker_rate",
        }
        for row in rows:
            field_name = fields.get(row["key"])
            if field_name is None:
                continue
            try:
                values[field_name] = float(row["value"])
            except (TypeError, ValueError):
                await log_warning(
                    f"Некорректное значение тарифа {row['key']}={row['value']!r}, используется значение по умолчанию"
                )

        config = PricingConfig(**values)
        await self._write_cache(config)

        await log_info(
            f"Тарифы загружены: {config.base_rate_per_km}/км, минимум {config.minimum_charge}, "
            f"грузчик {config.worker_rate}",
            type_msg=TypeMsg.DEBUG,
        )
        return config

    async def invalidate(self) -> None:
        """Сбрасывает кэш тарифов (после изменения system_config)."""
        if self._redis is None:
            return
        try:
            await self._redis.delete(PRICING_CACHE_KEY)
        except (RedisError, RuntimeError) as e:
            await log_warning(f"Не удалось сбросить кэш тарифов: {e}")

    async def _read_cache(self) -> Optional[PricingConfig]:
        if self._redis is None:
            return None
        try:
            return await self._redis.get_model(PRICING_CACHE_KEY, PricingConfig)
        except (RedisError, RuntimeError) as e:
            await log_warning(f"Кэш тарифов недоступен: {e}")
            return None

    async def _write_cache(self, config: PricingConfig) -> None:
        if self._redis is None:
            return
        try:
            await self._redis.set_model(PRICING_CACHE_KEY, config, ttl=self._ttl)
        except (RedisError, RuntimeError) as e:
            await log_warning(f"Не удалось закэшировать тарифы: {e}")
