"""
Утилиты для пула фьючерсов.

Конфигурация (``utils.config``) зависит от ``core`` и импортируется
напрямую, а не из этого пакета.
"""

from .logger import get_logger, setup_logging, get_log_metrics, reset_log_metrics
from .system import available_workers

__all__ = [
    "get_logger",
    "setup_logging",
    "get_log_metrics",
    "reset_log_metrics",
    "available_workers"
]
