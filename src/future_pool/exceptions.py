"""
Исключения для пула фьючерсов.
"""


class FuturePoolError(Exception):
    """Базовое исключение для пула фьючерсов."""
    pass


class TaskFailure(FuturePoolError):
    """Бэкенд не смог выполнить задачу (например, сломан пул процессов)."""
    pass


class PoolSaturatedError(FuturePoolError):
    """Нет свободных слотов, а политика диспетчеризации не блокирующая."""
    pass


class InvalidConfigurationError(FuturePoolError, ValueError):
    """Ошибка конфигурации."""
    pass


class FutureStateError(FuturePoolError):
    """Недопустимый переход состояния фьючерса."""
    pass


class FutureTimeoutError(FuturePoolError, TimeoutError):
    """Истек таймаут ожидания значения фьючерса."""
    pass


class PoolShutdownError(FuturePoolError):
    """Пул остановлен или находится в процессе остановки."""
    pass


class ShutdownError(FuturePoolError):
    """Ошибка при завершении работы."""
    pass
