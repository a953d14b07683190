"""
Модели воркеров (слотов исполнения) пула.
"""

import uuid
from enum import Enum
from typing import Optional
from dataclasses import dataclass, field
from datetime import datetime
from threading import Lock


class WorkerStatus(Enum):
    """Статусы воркеров."""
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class WorkerMetrics:
    """Метрики воркера."""

    tasks_completed: int = 0
    tasks_failed: int = 0
    total_execution_time: float = 0.0
    average_execution_time: float = 0.0
    last_task_at: Optional[datetime] = None
    uptime: float = 0.0

    def update(self, execution_time: float, success: bool):
        """Обновление после выполнения задачи."""
        if success:
            self.tasks_completed += 1
        else:
            self.tasks_failed += 1

        self.total_execution_time += execution_time
        self.average_execution_time = (
            self.total_execution_time / (self.tasks_completed + self.tasks_failed)
        )
        self.last_task_at = datetime.now()

    def get_success_rate(self) -> float:
        """Получение процента успешных задач."""
        total = self.tasks_completed + self.tasks_failed
        if total == 0:
            return 0.0
        return (self.tasks_completed / total) * 100


@dataclass
class Worker:
    """Один слот исполнения, привязанный к потоку."""

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    status: WorkerStatus = WorkerStatus.IDLE
    started_at: Optional[datetime] = None
    stopped_at: Optional[datetime] = None
    metrics: WorkerMetrics = field(default_factory=WorkerMetrics)
    _lock: Lock = field(default_factory=Lock, repr=False)

    def start(self):
        """Запуск воркера."""
        with self._lock:
            self.status = WorkerStatus.IDLE
            self.started_at = datetime.now()

    def stop(self):
        """Остановка воркера."""
        with self._lock:
            self.status = WorkerStatus.STOPPED
            self.stopped_at = datetime.now()
            if self.started_at:
                self.metrics.uptime = (self.stopped_at - self.started_at).total_seconds()

    def set_busy(self):
        with self._lock:
            if self.status == WorkerStatus.IDLE:
                self.status = WorkerStatus.BUSY

    def set_idle(self):
        with self._lock:
            if self.status == WorkerStatus.BUSY:
                self.status = WorkerStatus.IDLE

    def update_metrics(self, execution_time: float, success: bool = True):
        """Обновление метрик."""
        with self._lock:
            self.metrics.update(execution_time, success)

    def is_available(self) -> bool:
        """Проверка доступности воркера."""
        return self.status == WorkerStatus.IDLE
