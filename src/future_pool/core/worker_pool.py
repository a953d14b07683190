"""
Пул воркеров фиксированной емкости.
"""

import threading
from collections import deque
from typing import Any, Optional, Dict, List
from dataclasses import dataclass, field

from .plan import Plan, DispatchPolicy, ExecutionBackend, validate_capacity
from .task_channel import TaskChannel
from .graceful_shutdown import GracefulShutdown, ShutdownConfig
from .task_executor import TaskExecutor, ExecutionConfig
from .worker_manager import WorkerManager, WorkerManagerConfig

from ..models.future import Future
from ..models.task import Task
from ..models.worker import Worker
from ..models.pool_metrics import PoolMetrics, PoolStatus

from ..utils.logger import get_logger
from ..exceptions import FuturePoolError, PoolSaturatedError, PoolShutdownError


logger = get_logger(__name__)


@dataclass
class WorkerPoolConfig:
    """Конфигурация пула воркеров."""

    plan: Plan = field(default_factory=Plan)

    # Конфигурации компонентов
    shutdown_config: ShutdownConfig = field(default_factory=ShutdownConfig)
    execution_config: ExecutionConfig = field(default_factory=ExecutionConfig)
    worker_config: WorkerManagerConfig = field(default_factory=WorkerManagerConfig)


class WorkerPool:
    """
    Пул с фиксированным числом слотов исполнения.

    Число занятых слотов никогда не превышает емкость. Поведение при
    заполненном пуле задается политикой плана:

    - BLOCK: ``dispatch`` ждет освобождения слота, ожидающие обслуживаются
      в порядке прихода;
    - QUEUE: задача встает в неограниченную FIFO-очередь, ``dispatch`` не блокирует;
    - REJECT: ``dispatch`` выбрасывает PoolSaturatedError.
    """

    def __init__(self, config: Optional[WorkerPoolConfig] = None):
        self.config = config or WorkerPoolConfig()
        plan = self.config.plan

        self._lock = threading.RLock()
        self._status = PoolStatus.STOPPED
        self._capacity = plan.workers
        self._policy = plan.policy

        # Состояние слотов, все поля ниже защищены self._slots
        self._slots = threading.Condition()
        self._busy = 0
        self._outstanding = 0
        self._waiters: deque = deque()
        self._accepting = False
        self._paused = False

        # Инициализация компонентов
        self._task_channel = TaskChannel()
        self._task_executor = TaskExecutor(
            self.config.execution_config,
            backend=plan.backend,
            capacity=plan.workers
        )
        self._graceful_shutdown = GracefulShutdown(self.config.shutdown_config)
        self._worker_manager = WorkerManager(self.config.worker_config)

        self._metrics_lock = threading.Lock()
        self._pool_metrics = PoolMetrics(capacity=self._capacity)

        self._setup_callbacks()

        logger.info(
            f"WorkerPool initialized: capacity={self._capacity}, "
            f"policy={self._policy.value}, backend={plan.backend.value}"
        )

    def _setup_callbacks(self):
        """Связывание компонентов."""
        self._worker_manager.set_task_runner(self._run_task)
        self._worker_manager.set_get_task_callback(self._task_channel.get_task)
        self._worker_manager.set_on_worker_error(self._on_worker_error)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def policy(self) -> DispatchPolicy:
        return self._policy

    @property
    def backend(self) -> ExecutionBackend:
        return self._task_executor.backend

    @property
    def busy_count(self) -> int:
        """Число занятых слотов."""
        with self._slots:
            return self._busy

    @property
    def outstanding_count(self) -> int:
        """Число принятых, но еще не завершенных задач."""
        with self._slots:
            return self._outstanding

    def start(self):
        """Запуск пула."""
        with self._lock:
            if self._status != PoolStatus.STOPPED:
                raise FuturePoolError(f"Pool is not stopped (current status: {self._status.value})")

            logger.info("Starting WorkerPool...")
            self._status = PoolStatus.STARTING

            try:
                self._graceful_shutdown.reset()
                self._task_channel.reopen()
                self._worker_manager.start(self._capacity)

                with self._slots:
                    self._accepting = True

                self._pool_metrics.start_pool()
                self._status = PoolStatus.RUNNING
                logger.info("WorkerPool started successfully")

            except Exception as e:
                self._status = PoolStatus.ERROR
                logger.error(f"Failed to start WorkerPool: {e}")
                raise FuturePoolError(f"Failed to start pool: {e}") from e

    def configure(self, capacity: int):
        """
        Смена числа слотов.

        На работающем пуле новые задачи приостанавливаются, все принятые
        задачи дорабатывают, после чего воркеры перезапускаются с новой емкостью.

        Raises:
            InvalidConfigurationError: Если capacity не целое положительное
        """
        validate_capacity(capacity)

        with self._lock:
            if capacity == self._capacity:
                return

            if self._status != PoolStatus.RUNNING:
                self._task_executor.resize(capacity)
                self._set_capacity(capacity)
                return

            logger.info(f"Reconfiguring pool: {self._capacity} -> {capacity} slots, flushing outstanding work")

            with self._slots:
                self._paused = True

            try:
                self.wait_for_completion()
                self._worker_manager.stop()
                self._task_executor.resize(capacity)
                self._set_capacity(capacity)
                self._worker_manager.start(capacity)
            finally:
                with self._slots:
                    self._paused = False
                    self._slots.notify_all()

            logger.info(f"Pool reconfigured with {capacity} slots")

    def _set_capacity(self, capacity: int):
        with self._slots:
            self._capacity = capacity
            self._pool_metrics.capacity = capacity
            self._slots.notify_all()

    def dispatch(self, task: Task) -> Future:
        """
        Назначение задачи слоту.

        Args:
            task: Задача

        Returns:
            Фьючерс задачи в состоянии PENDING

        Raises:
            PoolShutdownError: Пул не принимает задачи
            PoolSaturatedError: Нет свободного слота при политике REJECT
        """
        reserved = self._policy != DispatchPolicy.QUEUE

        if reserved:
            self._reserve_slot(block=self._policy == DispatchPolicy.BLOCK)
        else:
            with self._slots:
                if not self._accepting:
                    raise PoolShutdownError("Pool is not accepting tasks")
                self._outstanding += 1

        try:
            self._task_channel.submit_task(task)
        except PoolShutdownError:
            self._release(reserved)
            raise

        with self._metrics_lock:
            self._pool_metrics.total_tasks_submitted += 1

        logger.debug(f"Task {task.id} ({task.name}) dispatched")
        return task.future

    def _reserve_slot(self, block: bool):
        """Занятие слота отправителем."""
        with self._slots:
            if not self._accepting:
                raise PoolShutdownError("Pool is not accepting tasks")

            if not block:
                if self._paused or self._waiters or self._busy >= self._capacity:
                    with self._metrics_lock:
                        self._pool_metrics.total_tasks_rejected += 1
                    raise PoolSaturatedError(f"All {self._capacity} slots are busy")
                self._occupy()
                return

            token = object()
            self._waiters.append(token)
            try:
                if not self._can_proceed(token):
                    with self._metrics_lock:
                        self._pool_metrics.saturation_waits += 1
                    logger.debug(f"Pool saturated ({self._busy}/{self._capacity}), dispatcher waiting")

                while not self._can_proceed(token):
                    self._slots.wait()
                    if not self._accepting:
                        raise PoolShutdownError("Pool stopped while waiting for a free slot")

                self._occupy()
            finally:
                self._waiters.remove(token)
                self._slots.notify_all()

    def _can_proceed(self, token: object) -> bool:
        return (
            not self._paused
            and self._waiters[0] is token
            and self._busy < self._capacity
        )

    def _occupy(self):
        """Вызывается под self._slots."""
        self._busy += 1
        self._outstanding += 1
        self._pool_metrics.update_busy_slots(self._busy)

    def _release(self, reserved: bool = True):
        """Освобождение слота и учет завершения задачи."""
        with self._slots:
            if reserved:
                self._busy -= 1
                self._pool_metrics.update_busy_slots(self._busy)
            self._outstanding -= 1
            self._slots.notify_all()

    def _run_task(self, task: Task, worker: Worker):
        """Выполнение задачи воркером."""
        if self._policy == DispatchPolicy.QUEUE:
            # Воркеров столько же, сколько слотов, поэтому ждать здесь не нужно
            with self._slots:
                self._busy += 1
                self._pool_metrics.update_busy_slots(self._busy)

        try:
            success = self._task_executor.execute_task(task, worker)
            with self._metrics_lock:
                self._pool_metrics.update_task_completion(task.get_execution_time(), success)
        except Exception as e:
            if not task.future.is_resolved():
                task.future.set_error(e)
            raise
        finally:
            self._release()

    def wait_for_completion(self, timeout: Optional[float] = None) -> bool:
        """
        Ожидание завершения всех принятых задач.

        Args:
            timeout: Таймаут ожидания (None - без ограничения)

        Returns:
            True если все задачи завершены, False если таймаут
        """
        with self._slots:
            return self._slots.wait_for(lambda: self._outstanding == 0, timeout=timeout)

    def shutdown(self, wait: Optional[bool] = None):
        """
        Остановка пула.

        Args:
            wait: Дождаться задач, уже принятых пулом. Задачи, которые так и
                не попали к воркеру, получают PoolShutdownError во фьючерсе.
                None - взять ShutdownConfig.wait_for_pending_tasks.
        """
        if wait is None:
            wait = self.config.shutdown_config.wait_for_pending_tasks

        with self._lock:
            if self._status == PoolStatus.STOPPED:
                return

            logger.info("Stopping WorkerPool...")
            self._status = PoolStatus.STOPPING

            self._graceful_shutdown.initiate_shutdown()
            shutdown_status = self._graceful_shutdown.execute_shutdown(
                stop_new_tasks_callback=self._stop_accepting_tasks,
                wait_for_completion_callback=self.wait_for_completion,
                terminate_workers_callback=lambda: self._terminate_workers(wait),
                wait=wait
            )

            if shutdown_status.completed:
                self._status = PoolStatus.STOPPED
                self._pool_metrics.stop_pool()
                logger.info("WorkerPool stopped successfully")
            else:
                self._status = PoolStatus.ERROR
                logger.error("WorkerPool shutdown failed")

    def _stop_accepting_tasks(self):
        """Остановка приема новых задач и пробуждение ожидающих отправителей."""
        with self._slots:
            self._accepting = False
            self._slots.notify_all()
        self._task_channel.close()

    def _terminate_workers(self, wait: bool):
        self._worker_manager.stop(wait=wait)

        abandoned = self._task_channel.drain()
        for task in abandoned:
            task.future.set_error(PoolShutdownError(f"Pool stopped before task {task.id} started"))
            self._release(reserved=self._policy != DispatchPolicy.QUEUE)

        if abandoned:
            logger.warning(f"{len(abandoned)} queued tasks were not started before shutdown")

        self._task_executor.close(wait=wait)

    def _on_worker_error(self, worker: Worker, error: Exception):
        """Обработка ошибки воркера (ошибки самих задач сюда не попадают)."""
        logger.error(f"Worker {worker.name} error: {error}")

    def get_status(self) -> PoolStatus:
        """Получение статуса пула."""
        return self._status

    def is_running(self) -> bool:
        return self._status == PoolStatus.RUNNING

    def get_metrics(self) -> Dict[str, Any]:
        """Получение метрик пула."""
        with self._slots, self._metrics_lock:
            pool_metrics = self._pool_metrics.to_dict()

        pool_metrics.update({
            'channel_metrics': self._task_channel.get_metrics(),
            'execution_metrics': self._task_executor.get_metrics(),
            'worker_metrics': self._worker_manager.get_worker_stats()
        })
        return pool_metrics

    def get_workers(self) -> List[Worker]:
        """Получение списка воркеров."""
        return self._worker_manager.get_workers()

    def get_worker_count(self) -> int:
        return len(self._worker_manager)

    def get_queue_size(self) -> int:
        """Задачи, ожидающие воркера."""
        return len(self._task_channel)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.shutdown()

    def __repr__(self) -> str:
        return (f"WorkerPool(status={self._status.value}, "
                f"capacity={self._capacity}, busy={self.busy_count}, "
                f"queue_size={self.get_queue_size()})")
