"""
Фьючерсы поверх пула воркеров фиксированной емкости.

Основные компоненты:
- Future: значение, которое вычисляется асинхронно
- WorkerPool: пул с ограниченным числом слотов и явной политикой насыщения
- Plan: конфигурация параллельного исполнения
- Scheduler: связывает план, пул и фьючерсы
"""

from .exceptions import (
    FuturePoolError,
    TaskFailure,
    PoolSaturatedError,
    InvalidConfigurationError,
    FutureStateError,
    FutureTimeoutError,
    PoolShutdownError,
    ShutdownError
)
from .models.future import Future, FutureState, is_resolved, value, values, resolved
from .models.task import Task, TaskStatus
from .core.plan import Plan, DispatchPolicy, ExecutionBackend
from .core.worker_pool import WorkerPool, WorkerPoolConfig
from .core.scheduler import Scheduler
from .utils.config import Config, load_config, load_config_from_env
from .utils.logger import get_logger, setup_logging
from .utils.system import available_workers

__version__ = "1.0.0"

__all__ = [
    "Future",
    "FutureState",
    "is_resolved",
    "value",
    "values",
    "resolved",
    "Task",
    "TaskStatus",
    "Plan",
    "DispatchPolicy",
    "ExecutionBackend",
    "WorkerPool",
    "WorkerPoolConfig",
    "Scheduler",
    "Config",
    "load_config",
    "load_config_from_env",
    "get_logger",
    "setup_logging",
    "available_workers",
    "FuturePoolError",
    "TaskFailure",
    "PoolSaturatedError",
    "InvalidConfigurationError",
    "FutureStateError",
    "FutureTimeoutError",
    "PoolShutdownError",
    "ShutdownError"
]
