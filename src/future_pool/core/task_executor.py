"""
Исполнитель задач: запускает вычисление и разрешает фьючерс.
"""

import multiprocessing
import threading
import time
from concurrent.futures import ProcessPoolExecutor
from concurrent.futures.process import BrokenProcessPool
from typing import Any, Optional, Dict
from dataclasses import dataclass
from datetime import datetime

from .plan import ExecutionBackend
from ..models.task import Task, TaskStatus
from ..models.worker import Worker
from ..utils.logger import get_logger
from ..exceptions import TaskFailure


logger = get_logger(__name__)


@dataclass
class ExecutionConfig:
    """Конфигурация выполнения задач."""
    enable_metrics: bool = True
    log_execution_details: bool = False
    # Метод запуска процессов для PROCESS-бэкенда ("fork", "spawn", "forkserver")
    mp_context: Optional[str] = None


class TaskExecutor:
    """
    Выполняет задачу на воркере и переводит ее фьючерс в терминальное состояние.

    Ошибка задачи никогда не выбрасывается наружу: она сохраняется во фьючерсе
    и всплывает только при вызове ``value()``.
    """

    def __init__(
        self,
        config: Optional[ExecutionConfig] = None,
        backend: ExecutionBackend = ExecutionBackend.THREAD,
        capacity: int = 1
    ):
        self.config = config or ExecutionConfig()
        self.backend = backend
        self._capacity = capacity
        self._execution_lock = threading.Lock()
        self._process_pool: Optional[ProcessPoolExecutor] = None
        self._metrics = self._empty_metrics()

        logger.debug(f"TaskExecutor initialized with backend={backend.value}, config={self.config}")

    @staticmethod
    def _empty_metrics() -> Dict[str, Any]:
        return {
            'total_executions': 0,
            'successful_executions': 0,
            'failed_executions': 0,
            'total_execution_time': 0.0,
            'average_execution_time': 0.0,
            'max_execution_time': 0.0
        }

    def execute_task(self, task: Task, worker: Worker) -> bool:
        """
        Выполнение задачи.

        Args:
            task: Задача для выполнения
            worker: Воркер, выполняющий задачу

        Returns:
            True если задача завершилась успешно
        """
        start_time = time.time()

        task.status = TaskStatus.RUNNING
        task.started_at = datetime.now()
        task.worker_id = worker.id
        worker.set_busy()

        if self.config.log_execution_details:
            logger.info(f"Executing task {task.id} on worker {worker.name}")

        try:
            result = self._run(task)
        except BaseException as e:
            # Включая SystemExit и KeyboardInterrupt: поток воркера живет до остановки пула
            execution_time = time.time() - start_time
            task.status = TaskStatus.FAILED
            task.completed_at = datetime.now()

            self._update_metrics(execution_time, False)
            worker.update_metrics(execution_time, False)
            worker.set_idle()

            # Ошибка хранится во фьючерсе до вызова value()
            logger.debug(f"Task {task.id} failed with {type(e).__name__}: {e}")
            task.future.set_error(e)
            return False

        execution_time = time.time() - start_time
        task.status = TaskStatus.COMPLETED
        task.completed_at = datetime.now()

        self._update_metrics(execution_time, True)
        worker.update_metrics(execution_time, True)
        worker.set_idle()

        if self.config.log_execution_details:
            logger.info(f"Task {task.id} completed in {execution_time:.3f}s")

        task.future.set_result(result)
        return True

    def _run(self, task: Task) -> Any:
        if self.backend == ExecutionBackend.PROCESS:
            return self._run_in_process(task)
        return task()

    def _run_in_process(self, task: Task) -> Any:
        """Выполнение в отдельном процессе. func и аргументы должны сериализоваться pickle."""
        pool = self._get_process_pool()
        try:
            future = pool.submit(task.func, *task.args, **task.kwargs)
            return future.result()
        except BrokenProcessPool as e:
            raise TaskFailure(f"Process backend could not run task {task.id}: {e}") from e

    def _get_process_pool(self) -> ProcessPoolExecutor:
        with self._execution_lock:
            if self._process_pool is None:
                context = None
                if self.config.mp_context:
                    context = multiprocessing.get_context(self.config.mp_context)
                self._process_pool = ProcessPoolExecutor(
                    max_workers=self._capacity,
                    mp_context=context
                )
                logger.info(f"Started process backend with {self._capacity} processes")
            return self._process_pool

    def resize(self, capacity: int):
        """Смена числа процессов. Вызывать только когда задач в работе нет."""
        self.close()
        self._capacity = capacity

    def close(self, wait: bool = True):
        """Остановка процессов бэкенда."""
        with self._execution_lock:
            pool, self._process_pool = self._process_pool, None
        if pool is not None:
            pool.shutdown(wait=wait)
            logger.info("Process backend stopped")

    def _update_metrics(self, execution_time: float, success: bool):
        """Обновление метрик выполнения."""
        if not self.config.enable_metrics:
            return

        with self._execution_lock:
            self._metrics['total_executions'] += 1
            self._metrics['total_execution_time'] += execution_time
            self._metrics['max_execution_time'] = max(
                self._metrics['max_execution_time'],
                execution_time
            )
            self._metrics['average_execution_time'] = (
                self._metrics['total_execution_time'] / self._metrics['total_executions']
            )

            if success:
                self._metrics['successful_executions'] += 1
            else:
                self._metrics['failed_executions'] += 1

    def get_metrics(self) -> Dict[str, Any]:
        """Получение метрик выполнения."""
        with self._execution_lock:
            metrics = self._metrics.copy()

        total = metrics['total_executions']
        if total > 0:
            metrics['success_rate'] = (metrics['successful_executions'] / total) * 100
            metrics['failure_rate'] = (metrics['failed_executions'] / total) * 100
        else:
            metrics['success_rate'] = 0.0
            metrics['failure_rate'] = 0.0

        return metrics

    def reset_metrics(self):
        """Сброс метрик."""
        with self._execution_lock:
            self._metrics = self._empty_metrics()

    def __repr__(self) -> str:
        metrics = self.get_metrics()
        return (f"TaskExecutor(backend={self.backend.value}, "
                f"executions={metrics['total_executions']}, "
                f"success_rate={metrics['success_rate']:.1f}%)")
