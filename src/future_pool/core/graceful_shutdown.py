"""
Механизм graceful shutdown для пула фьючерсов.
"""

import threading
from typing import Callable, List, Optional
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from ..utils.logger import get_logger
from ..exceptions import ShutdownError


logger = get_logger(__name__)


class ShutdownPhase(Enum):
    """Фазы завершения работы."""
    INITIATED = "initiated"
    STOPPING_NEW_TASKS = "stopping_new_tasks"
    WAITING_FOR_COMPLETION = "waiting_for_completion"
    TERMINATING_WORKERS = "terminating_workers"
    COMPLETED = "completed"


@dataclass
class ShutdownConfig:
    """Конфигурация graceful shutdown."""
    task_completion_timeout: Optional[float] = 30.0  # None - ждать без ограничения
    wait_for_pending_tasks: bool = True  # Дождаться задач, уже принятых пулом


@dataclass
class ShutdownStatus:
    """Статус завершения работы."""
    phase: ShutdownPhase
    start_time: datetime
    drained: bool = False
    cleanup_callbacks_executed: int = 0
    error_count: int = 0
    completed: bool = False
    error: Optional[Exception] = None


class GracefulShutdown:
    """Проводит пул через фазы остановки."""

    def __init__(self, config: Optional[ShutdownConfig] = None):
        self.config = config or ShutdownConfig()
        self._shutdown_event = threading.Event()
        self._status: Optional[ShutdownStatus] = None
        self._lock = threading.Lock()
        self._callbacks: List[Callable] = []

    def initiate_shutdown(self) -> ShutdownStatus:
        """
        Инициация graceful shutdown.

        Returns:
            Статус завершения работы
        """
        with self._lock:
            if self._status and not self._status.completed:
                logger.warning("Shutdown already in progress")
                return self._status

            self._shutdown_event.set()
            self._status = ShutdownStatus(
                phase=ShutdownPhase.INITIATED,
                start_time=datetime.now()
            )

            logger.info("Graceful shutdown initiated")
            return self._status

    def execute_shutdown(
        self,
        stop_new_tasks_callback: Optional[Callable[[], None]] = None,
        wait_for_completion_callback: Optional[Callable[[Optional[float]], bool]] = None,
        terminate_workers_callback: Optional[Callable[[], None]] = None,
        wait: Optional[bool] = None
    ) -> ShutdownStatus:
        """
        Выполнение graceful shutdown.

        Args:
            stop_new_tasks_callback: Прекращает прием новых задач
            wait_for_completion_callback: Ждет завершения принятых задач,
                принимает таймаут и возвращает True при успехе
            terminate_workers_callback: Останавливает воркеры
            wait: Переопределение config.wait_for_pending_tasks

        Returns:
            Финальный статус завершения работы
        """
        if not self._status:
            raise ShutdownError("Shutdown not initiated")

        if wait is None:
            wait = self.config.wait_for_pending_tasks

        try:
            self._status.phase = ShutdownPhase.STOPPING_NEW_TASKS
            logger.debug("Phase 1: Stopping new task acceptance")
            if stop_new_tasks_callback:
                stop_new_tasks_callback()

            if wait and wait_for_completion_callback:
                self._status.phase = ShutdownPhase.WAITING_FOR_COMPLETION
                logger.debug("Phase 2: Waiting for task completion")
                self._status.drained = wait_for_completion_callback(
                    self.config.task_completion_timeout
                )
                if not self._status.drained:
                    logger.warning(
                        f"Task completion timeout ({self.config.task_completion_timeout}s) exceeded"
                    )

            self._status.phase = ShutdownPhase.TERMINATING_WORKERS
            logger.debug("Phase 3: Terminating workers")
            if terminate_workers_callback:
                terminate_workers_callback()

            self._execute_cleanup_callbacks()

            self._status.phase = ShutdownPhase.COMPLETED
            self._status.completed = True

            elapsed_time = self.get_elapsed_time()
            logger.info(f"Graceful shutdown completed in {elapsed_time:.2f} seconds")

        except Exception as e:
            self._status.error = e
            self._status.error_count += 1
            logger.error(f"Error during graceful shutdown: {e}")

        return self._status

    def _execute_cleanup_callbacks(self):
        """Выполнение cleanup callback'ов."""
        for callback in list(self._callbacks):
            try:
                callback()
                self._status.cleanup_callbacks_executed += 1
            except Exception as e:
                logger.error(f"Error in cleanup callback {callback}: {e}")
                self._status.error_count += 1

    def add_cleanup_callback(self, callback: Callable[[], None]):
        """Добавление cleanup callback'а."""
        self._callbacks.append(callback)

    def remove_cleanup_callback(self, callback: Callable[[], None]):
        """Удаление cleanup callback'а."""
        try:
            self._callbacks.remove(callback)
        except ValueError:
            pass

    def is_shutdown_initiated(self) -> bool:
        return self._shutdown_event.is_set()

    def is_shutdown_completed(self) -> bool:
        return bool(self._status and self._status.completed)

    def get_status(self) -> Optional[ShutdownStatus]:
        return self._status

    def get_elapsed_time(self) -> float:
        """Получение времени с начала shutdown."""
        if self._status:
            return (datetime.now() - self._status.start_time).total_seconds()
        return 0.0

    def reset(self):
        """Сброс состояния для повторного запуска пула."""
        with self._lock:
            self._shutdown_event.clear()
            self._status = None

    def __repr__(self) -> str:
        if self._status:
            return f"GracefulShutdown(phase={self._status.phase.value}, elapsed={self.get_elapsed_time():.1f}s)"
        return "GracefulShutdown(not_initiated)"
