"""
Основные компоненты пула фьючерсов.
"""

from .plan import Plan, DispatchPolicy, ExecutionBackend
from .task_channel import TaskChannel
from .task_executor import TaskExecutor, ExecutionConfig
from .graceful_shutdown import GracefulShutdown, ShutdownConfig
from .worker_manager import WorkerManager, WorkerManagerConfig
from .worker_pool import WorkerPool, WorkerPoolConfig
from .scheduler import Scheduler

__all__ = [
    "Plan",
    "DispatchPolicy",
    "ExecutionBackend",
    "TaskChannel",
    "TaskExecutor",
    "ExecutionConfig",
    "GracefulShutdown",
    "ShutdownConfig",
    "WorkerManager",
    "WorkerManagerConfig",
    "WorkerPool",
    "WorkerPoolConfig",
    "Scheduler"
]
