"""
Модели данных для пула фьючерсов.
"""

from .future import Future, FutureState, is_resolved, value, values, resolved
from .task import Task, TaskStatus
from .worker import Worker, WorkerStatus, WorkerMetrics
from .pool_metrics import PoolMetrics, PoolStatus

__all__ = [
    "Future",
    "FutureState",
    "is_resolved",
    "value",
    "values",
    "resolved",
    "Task",
    "TaskStatus",
    "Worker",
    "WorkerStatus",
    "WorkerMetrics",
    "PoolMetrics",
    "PoolStatus"
]
