# src/core/billing/__init__.py
"""
Домен биллинга.
Кредитный леджер: списание, перевод и возврат кредитов.
"""

from src.core.billing.service import CreditLedger

__all__ = [
    "CreditLedger",
]
