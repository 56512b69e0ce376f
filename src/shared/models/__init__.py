# src/shared/models/__init__.py
"""
Общие модели ответов API.
"""

from src.shared.models.common import ApiResponse, ErrorResponse, HealthStatus

__all__ = ["ApiResponse", "ErrorResponse", "HealthStatus"]
