"""
Метрики пула фьючерсов.
"""

from enum import Enum
from typing import Dict, Optional
from dataclasses import dataclass
from datetime import datetime


class PoolStatus(Enum):
    """Статусы пула."""
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"
    ERROR = "error"


@dataclass
class PoolMetrics:
    """Метрики пула фьючерсов."""

    # Задачи
    total_tasks_submitted: int = 0
    total_tasks_completed: int = 0
    total_tasks_failed: int = 0
    total_tasks_rejected: int = 0

    # Время выполнения
    total_execution_time: float = 0.0
    average_execution_time: float = 0.0
    max_execution_time: float = 0.0
    min_execution_time: float = float('inf')

    # Слоты
    capacity: int = 0
    busy_slots: int = 0
    max_busy_observed: int = 0
    saturation_waits: int = 0

    pool_start_time: Optional[datetime] = None
    pool_stop_time: Optional[datetime] = None
    uptime: float = 0.0

    def start_pool(self):
        """Запуск пула."""
        self.pool_start_time = datetime.now()
        self.pool_stop_time = None

    def stop_pool(self):
        """Остановка пула."""
        self.pool_stop_time = datetime.now()
        if self.pool_start_time:
            self.uptime = (self.pool_stop_time - self.pool_start_time).total_seconds()

    def update_task_completion(self, execution_time: float, success: bool = True):
        """Обновление завершения задачи."""
        if success:
            self.total_tasks_completed += 1
        else:
            self.total_tasks_failed += 1

        finished = self.total_tasks_completed + self.total_tasks_failed
        self.total_execution_time += execution_time
        self.max_execution_time = max(self.max_execution_time, execution_time)
        self.min_execution_time = min(self.min_execution_time, execution_time)
        self.average_execution_time = self.total_execution_time / finished

    def update_busy_slots(self, busy: int):
        """Обновление числа занятых слотов."""
        self.busy_slots = busy
        self.max_busy_observed = max(self.max_busy_observed, busy)

    def get_uptime(self) -> float:
        """Получение времени работы пула."""
        if self.pool_start_time and not self.pool_stop_time:
            return (datetime.now() - self.pool_start_time).total_seconds()
        return self.uptime

    def to_dict(self) -> Dict:
        """Преобразование в словарь."""
        finished = self.total_tasks_completed + self.total_tasks_failed
        return {
            'total_tasks_submitted': self.total_tasks_submitted,
            'total_tasks_completed': self.total_tasks_completed,
            'total_tasks_failed': self.total_tasks_failed,
            'total_tasks_rejected': self.total_tasks_rejected,
            'total_execution_time': self.total_execution_time,
            'average_execution_time': self.average_execution_time,
            'max_execution_time': self.max_execution_time,
            'min_execution_time': self.min_execution_time if self.min_execution_time != float('inf') else 0,
            'capacity': self.capacity,
            'busy_slots': self.busy_slots,
            'max_busy_observed': self.max_busy_observed,
            'saturation_waits': self.saturation_waits,
            'success_rate': (self.total_tasks_completed / finished * 100) if finished else 0.0,
            'uptime': self.get_uptime()
        }
