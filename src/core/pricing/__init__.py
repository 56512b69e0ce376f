# src/core/pricing/__init__.py
"""
Домен тарифов.
Тарифная таблица и формула стоимости.
"""

from src.core.pricing.service import PricingConfig, PricingConfigProvider, calculate_cost

__all__ = [
    "PricingConfig",
    "PricingConfigProvider",
    "calculate_cost",
]
