"""
Модели задач для пула фьючерсов.
"""

import uuid
from enum import Enum
from typing import Any, Callable, Optional, Dict
from dataclasses import dataclass, field
from datetime import datetime

from .future import Future


class TaskStatus(Enum):
    """Статусы задач."""
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class Task:
    """
    Отложенное вычисление без аргументов.

    Аргументы захватываются в момент отправки, каждой задаче соответствует
    ровно один фьючерс с тем же ID.
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    func: Callable = None
    args: tuple = field(default_factory=tuple)
    kwargs: Dict[str, Any] = field(default_factory=dict)
    future: Optional[Future] = None
    created_at: datetime = field(default_factory=datetime.now)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    status: TaskStatus = TaskStatus.QUEUED
    worker_id: Optional[str] = None

    def __post_init__(self):
        """Валидация после инициализации."""
        if not self.func:
            raise ValueError("Task function is required")
        if not callable(self.func):
            raise ValueError("Task function must be callable")
        if not self.name:
            self.name = getattr(self.func, "__name__", "task")
        if self.future is None:
            self.future = Future(name=self.name, future_id=self.id)

    def __call__(self) -> Any:
        return self.func(*self.args, **self.kwargs)

    def get_execution_time(self) -> float:
        """Время выполнения в секундах (0, если задача не завершена)."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return 0.0
