"""
Канал задач между диспетчером и воркерами.
"""

import queue
import threading
from typing import List, Optional

from ..models.task import Task
from ..utils.logger import get_logger
from ..exceptions import PoolShutdownError


logger = get_logger(__name__)


class TaskChannel:
    """Неограниченная FIFO-очередь задач. Приоритетов нет."""

    def __init__(self):
        self._queue: "queue.Queue[Task]" = queue.Queue()
        self._closed = threading.Event()
        self._metrics_lock = threading.Lock()
        self._metrics = {
            'tasks_submitted': 0,
            'tasks_retrieved': 0,
            'max_size_reached': 0
        }

    def submit_task(self, task: Task):
        """
        Отправка задачи в канал. Никогда не блокирует.

        Raises:
            PoolShutdownError: Если канал закрыт
        """
        if self._closed.is_set():
            raise PoolShutdownError("Task channel is closed")

        self._queue.put(task)

        with self._metrics_lock:
            self._metrics['tasks_submitted'] += 1
            self._metrics['max_size_reached'] = max(
                self._metrics['max_size_reached'],
                self._queue.qsize()
            )

        logger.debug(f"Task {task.id} submitted to channel")

    def get_task(self, timeout: Optional[float] = None) -> Optional[Task]:
        """
        Получение задачи из канала.

        Args:
            timeout: Таймаут ожидания

        Returns:
            Задача или None, если за timeout ничего не пришло
        """
        try:
            task = self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

        with self._metrics_lock:
            self._metrics['tasks_retrieved'] += 1

        logger.debug(f"Task {task.id} retrieved from channel")
        return task

    def drain(self) -> List[Task]:
        """Извлечение всех оставшихся задач без ожидания."""
        tasks = []
        while True:
            try:
                tasks.append(self._queue.get_nowait())
            except queue.Empty:
                break
        return tasks

    def close(self):
        """Закрытие канала для новых задач. Уже поставленные можно забрать."""
        self._closed.set()
        logger.debug("Task channel closed")

    def reopen(self):
        self._closed.clear()

    def is_closed(self) -> bool:
        return self._closed.is_set()

    def get_metrics(self) -> dict:
        """Получение метрик канала."""
        with self._metrics_lock:
            metrics = self._metrics.copy()
        metrics['current_size'] = len(self)
        return metrics

    def __len__(self) -> int:
        return self._queue.qsize()

    def __repr__(self) -> str:
        return f"TaskChannel(size={len(self)}, closed={self.is_closed()})"
