"""
Определение доступных ресурсов системы.
"""

import os

import psutil

from .logger import get_logger


logger = get_logger(__name__)

WORKERS_ENV_VAR = "FUTURE_POOL_WORKERS"


def available_workers() -> int:
    """
    Количество воркеров по умолчанию.

    Порядок: переменная окружения FUTURE_POOL_WORKERS, затем число CPU,
    доступных процессу (affinity), затем общее число логических CPU.
    Всегда не меньше 1.
    """
    override = os.getenv(WORKERS_ENV_VAR)
    if override:
        try:
            return max(1, int(override))
        except ValueError:
            logger.warning(f"Ignoring non-integer {WORKERS_ENV_VAR}={override!r}")

    try:
        affinity = psutil.Process().cpu_affinity()
        if affinity:
            return len(affinity)
    except (AttributeError, psutil.Error):
        # cpu_affinity() есть не на всех платформах
        pass

    return psutil.cpu_count(logical=True) or 1
