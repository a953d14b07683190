"""
План исполнения: сколько воркеров и как задачи раздаются по слотам.
"""

from dataclasses import dataclass, field, replace
from enum import Enum

from ..utils.system import available_workers
from ..exceptions import InvalidConfigurationError


class DispatchPolicy(Enum):
    """Поведение при отправке задачи в заполненный пул."""
    BLOCK = "block"    # отправитель ждет свободный слот, в порядке очереди
    QUEUE = "queue"    # задача ставится в неограниченную FIFO-очередь
    REJECT = "reject"  # PoolSaturatedError


class ExecutionBackend(Enum):
    """Где слот выполняет задачу."""
    THREAD = "thread"
    PROCESS = "process"


def validate_capacity(capacity) -> int:
    """Проверка числа слотов: целое положительное (bool не принимается)."""
    if isinstance(capacity, bool) or not isinstance(capacity, int):
        raise InvalidConfigurationError(
            f"Pool capacity must be a positive integer, got {capacity!r}"
        )
    if capacity < 1:
        raise InvalidConfigurationError(
            f"Pool capacity must be a positive integer, got {capacity}"
        )
    return capacity


@dataclass(frozen=True)
class Plan:
    """Неизменяемая конфигурация параллельного исполнения."""

    workers: int = field(default_factory=available_workers)
    policy: DispatchPolicy = DispatchPolicy.BLOCK
    backend: ExecutionBackend = ExecutionBackend.THREAD

    def __post_init__(self):
        validate_capacity(self.workers)

        # Строковые значения из конфигов
        try:
            object.__setattr__(self, "policy", DispatchPolicy(self.policy))
            object.__setattr__(self, "backend", ExecutionBackend(self.backend))
        except ValueError as e:
            raise InvalidConfigurationError(str(e)) from e

    @classmethod
    def sequential(cls) -> "Plan":
        """Один воркер: задачи выполняются строго по одной."""
        return cls(workers=1)

    @classmethod
    def from_config(cls, config) -> "Plan":
        """Создание плана из объекта Config."""
        return cls(workers=config.workers, policy=config.policy, backend=config.backend)

    def with_workers(self, workers: int) -> "Plan":
        return replace(self, workers=workers)
