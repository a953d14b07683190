"""
Планировщик: точка сборки плана, пула и фьючерсов.
"""

import threading
from typing import Any, Callable, Dict, Iterable, List, Optional

from .plan import Plan, validate_capacity
from .worker_pool import WorkerPool, WorkerPoolConfig
from .graceful_shutdown import ShutdownConfig
from .task_executor import ExecutionConfig
from .worker_manager import WorkerManagerConfig

from ..models.future import Future
from ..models.task import Task
from ..utils.logger import get_logger


logger = get_logger(__name__)


class Scheduler:
    """
    Владеет одним пулом, построенным по своему плану, и раздает фьючерсы.

    Глобального "текущего плана" нет: каждое место вызова держит свой
    планировщик. Пул создается при первой отправке задачи.

    Пример::

        with Scheduler(Plan(workers=2)) as scheduler:
            future = scheduler.submit(pow, 2, 10)
            future.value()  # 1024
    """

    def __init__(
        self,
        plan: Optional[Plan] = None,
        shutdown_config: Optional[ShutdownConfig] = None,
        execution_config: Optional[ExecutionConfig] = None,
        worker_config: Optional[WorkerManagerConfig] = None
    ):
        self._plan = plan or Plan()
        self._shutdown_config = shutdown_config or ShutdownConfig()
        self._execution_config = execution_config or ExecutionConfig()
        self._worker_config = worker_config or WorkerManagerConfig()
        self._lock = threading.Lock()
        self._pool: Optional[WorkerPool] = None

    @classmethod
    def from_config(cls, config) -> "Scheduler":
        """
        Создание планировщика из объекта Config.

        log_level применяется к логгеру пакета future_pool. Обработчики не
        меняются, их настраивает setup_logging.
        """
        get_logger("future_pool").setLevel(config.log_level.upper())
        return cls(
            Plan.from_config(config),
            shutdown_config=config.shutdown,
            execution_config=config.execution
        )

    @property
    def plan(self) -> Plan:
        return self._plan

    @property
    def pool(self) -> Optional[WorkerPool]:
        """Текущий пул или None, если задачи еще не отправлялись."""
        return self._pool

    def submit(self, func: Callable, *args, name: str = "", **kwargs) -> Future:
        """
        Отправка отложенного вычисления.

        Аргументы захватываются сейчас. При политике BLOCK вызов ждет
        свободный слот, в остальных случаях возвращается сразу.

        Args:
            func: Функция для выполнения
            *args: Аргументы функции
            name: Имя задачи
            **kwargs: Именованные аргументы функции

        Returns:
            Фьючерс в состоянии PENDING
        """
        task = Task(name=name, func=func, args=args, kwargs=kwargs)
        return self._get_pool().dispatch(task)

    def map(self, func: Callable, items: Iterable[Any], name: str = "") -> List[Future]:
        """Один фьючерс на каждый элемент, в порядке элементов."""
        prefix = name or getattr(func, "__name__", "task")
        return [
            self.submit(func, item, name=f"{prefix}[{index}]")
            for index, item in enumerate(items)
        ]

    def configure(self, capacity: int):
        """
        Смена числа воркеров.

        Raises:
            InvalidConfigurationError: Синхронно, если capacity не целое положительное
        """
        validate_capacity(capacity)

        with self._lock:
            self._plan = self._plan.with_workers(capacity)
            if self._pool is not None:
                self._pool.configure(capacity)

        logger.info(f"Scheduler configured with {capacity} workers")

    def set_plan(self, plan: Plan):
        """Смена плана целиком. Текущий пул дорабатывает принятые задачи и останавливается."""
        with self._lock:
            old_pool, self._pool = self._pool, None
            self._plan = plan

            if old_pool is not None:
                old_pool.shutdown(wait=True)

        logger.info(f"Scheduler plan set to {plan}")

    def _get_pool(self) -> WorkerPool:
        with self._lock:
            if self._pool is None:
                self._pool = WorkerPool(WorkerPoolConfig(
                    plan=self._plan,
                    shutdown_config=self._shutdown_config,
                    execution_config=self._execution_config,
                    worker_config=self._worker_config
                ))
                self._pool.start()
            return self._pool

    def wait_for_completion(self, timeout: Optional[float] = None) -> bool:
        """Ожидание завершения всех отправленных задач."""
        pool = self._pool
        if pool is None:
            return True
        return pool.wait_for_completion(timeout)

    def shutdown(self, wait: Optional[bool] = None):
        """
        Остановка пула. Следующий submit создаст новый пул.

        Args:
            wait: Дождаться принятых задач (None - по ShutdownConfig)
        """
        with self._lock:
            pool, self._pool = self._pool, None
            if pool is not None:
                pool.shutdown(wait=wait)

    def get_metrics(self) -> Dict[str, Any]:
        pool = self._pool
        if pool is None:
            return {}
        return pool.get_metrics()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()

    def __repr__(self) -> str:
        return f"Scheduler(plan={self._plan}, pool={self._pool!r})"
