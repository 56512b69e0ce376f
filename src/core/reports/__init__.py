# src/core/reports/__init__.py
"""
Домен модерации.
"""

from src.core.reports.models import Report
from src.core.reports.service import ReportService

__all__ = [
    "Report",
    "ReportService",
]
