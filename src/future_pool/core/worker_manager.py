"""
Менеджер воркеров: фиксированный набор потоков-слотов.
"""

import threading
from typing import List, Optional, Dict, Callable, Any
from dataclasses import dataclass

from ..models.worker import Worker, WorkerStatus
from ..models.task import Task
from ..utils.logger import get_logger
from ..exceptions import FuturePoolError


logger = get_logger(__name__)


@dataclass
class WorkerManagerConfig:
    """Конфигурация менеджера воркеров."""
    poll_interval: float = 0.1  # Как часто воркер проверяет сигнал остановки
    join_timeout: float = 5.0   # Сколько ждать завершения потока при остановке
    thread_name_prefix: str = "future-pool-worker"


class WorkerManager:
    """Запускает и останавливает потоки воркеров. Число воркеров равно емкости пула."""

    def __init__(self, config: Optional[WorkerManagerConfig] = None):
        self.config = config or WorkerManagerConfig()
        self._workers: List[Worker] = []
        self._worker_threads: Dict[str, threading.Thread] = {}
        self._lock = threading.Lock()
        self._shutdown_event = threading.Event()

        # Callback'и для взаимодействия с пулом
        self._task_runner: Optional[Callable[[Task, Worker], None]] = None
        self._get_task_callback: Optional[Callable[..., Optional[Task]]] = None
        self._on_worker_error: Optional[Callable[[Worker, Exception], None]] = None

    def set_task_runner(self, runner: Callable[[Task, Worker], None]):
        """Установка функции, выполняющей задачу на воркере."""
        self._task_runner = runner

    def set_get_task_callback(self, callback: Callable[..., Optional[Task]]):
        """Установка callback'а для получения задач."""
        self._get_task_callback = callback

    def set_on_worker_error(self, callback: Callable[[Worker, Exception], None]):
        """Установка callback'а для обработки ошибок воркеров."""
        self._on_worker_error = callback

    def start(self, count: int):
        """Запуск count воркеров."""
        if self._task_runner is None or self._get_task_callback is None:
            raise FuturePoolError("WorkerManager callbacks are not configured")

        with self._lock:
            if self._workers:
                raise FuturePoolError("WorkerManager is already running")

            # Новое событие на каждый запуск: потоки прошлого запуска остаются остановленными
            self._shutdown_event = threading.Event()
            for index in range(count):
                self._create_worker(index + 1)

        logger.info(f"WorkerManager started with {count} workers")

    def stop(self, wait: bool = True):
        """
        Остановка всех воркеров. Задача, уже взятая воркером, дорабатывает.

        Args:
            wait: Дождаться завершения потоков (не дольше join_timeout на поток)
        """
        self._shutdown_event.set()

        with self._lock:
            threads = list(self._worker_threads.values())
            workers = self._workers

        for thread in threads:
            if wait and thread is not threading.current_thread():
                thread.join(timeout=self.config.join_timeout)
                if thread.is_alive():
                    logger.warning(f"Worker thread {thread.name} did not stop in time")

        with self._lock:
            for worker in workers:
                if worker.status != WorkerStatus.STOPPED:
                    worker.stop()
            self._workers = []
            self._worker_threads = {}

        logger.info("WorkerManager stopped")

    def _create_worker(self, index: int) -> Worker:
        """Создание воркера и его потока. Вызывается под self._lock."""
        worker = Worker(name=f"worker-{index}")
        worker.start()
        self._workers.append(worker)

        thread = threading.Thread(
            target=self._worker_loop,
            args=(worker, self._shutdown_event),
            name=f"{self.config.thread_name_prefix}-{index}",
            daemon=True
        )
        self._worker_threads[worker.id] = thread
        thread.start()

        logger.debug(f"Created worker {worker.name} ({worker.id})")
        return worker

    def _worker_loop(self, worker: Worker, shutdown_event: threading.Event):
        """Основной цикл воркера."""
        logger.debug(f"Worker {worker.name} started")

        try:
            while not shutdown_event.is_set():
                task = self._get_task_callback(timeout=self.config.poll_interval)
                if task is None:
                    continue

                try:
                    self._task_runner(task, worker)
                except Exception as e:
                    logger.error(f"Error in worker {worker.name} loop: {e}")
                    if self._on_worker_error:
                        self._on_worker_error(worker, e)
        finally:
            worker.stop()
            logger.debug(f"Worker {worker.name} stopped")

    def get_workers(self) -> List[Worker]:
        """Получение списка воркеров."""
        with self._lock:
            return self._workers.copy()

    def get_worker_stats(self) -> Dict[str, Any]:
        """Получение статистики воркеров."""
        with self._lock:
            workers = self._workers.copy()

        total_workers = len(workers)
        busy_workers = sum(1 for w in workers if w.status == WorkerStatus.BUSY)
        total_tasks = sum(w.metrics.tasks_completed for w in workers)
        total_failed = sum(w.metrics.tasks_failed for w in workers)

        return {
            'total_workers': total_workers,
            'idle_workers': sum(1 for w in workers if w.is_available()),
            'busy_workers': busy_workers,
            'total_tasks_completed': total_tasks,
            'total_tasks_failed': total_failed,
            'worker_utilization': (busy_workers / total_workers * 100) if total_workers > 0 else 0
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._workers)

    def __repr__(self) -> str:
        stats = self.get_worker_stats()
        return f"WorkerManager(workers={stats['total_workers']}, busy={stats['busy_workers']})"
