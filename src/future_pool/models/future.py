"""
Модель фьючерса: значение, которое становится доступным асинхронно.
"""

import threading
import time
import uuid
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional
from datetime import datetime

from ..utils.logger import get_logger
from ..exceptions import FutureStateError, FutureTimeoutError


logger = get_logger(__name__)


class FutureState(Enum):
    """Состояния фьючерса."""
    PENDING = "pending"
    RESOLVED = "resolved"
    FAILED = "failed"


class Future:
    """
    Хэндл значения, вычисляемого воркером пула.

    Состояние меняется ровно один раз: PENDING -> RESOLVED или PENDING -> FAILED.
    Писатель один (воркер, выполняющий задачу), читателей может быть сколько угодно.
    """

    def __init__(self, name: str = "", future_id: Optional[str] = None):
        self.id = future_id or str(uuid.uuid4())
        self.name = name
        self.created_at = datetime.now()
        self.resolved_at: Optional[datetime] = None

        self._state = FutureState.PENDING
        self._result: Any = None
        self._error: Optional[BaseException] = None
        self._done = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[["Future"], None]] = []

    @property
    def state(self) -> FutureState:
        """Текущее состояние."""
        return self._state

    def is_resolved(self) -> bool:
        """Неблокирующая проверка: True, если фьючерс в терминальном состоянии."""
        return self._done.is_set()

    def is_failed(self) -> bool:
        return self._state == FutureState.FAILED

    def value(self, timeout: Optional[float] = None) -> Any:
        """
        Блокирующее получение значения.

        Args:
            timeout: Максимальное время ожидания в секундах (None - ждать бесконечно)

        Returns:
            Результат задачи

        Raises:
            FutureTimeoutError: Если значение не появилось за timeout.
                Задача при этом продолжает выполняться.
            Exception: Сохраненная ошибка задачи, при каждом вызове одна и та же
        """
        if not self._done.wait(timeout):
            raise FutureTimeoutError(
                f"Future {self.id} not resolved within {timeout}s"
            )

        if self._state == FutureState.FAILED:
            raise self._error
        return self._result

    def error(self, timeout: Optional[float] = None) -> Optional[BaseException]:
        """Ожидание завершения и возврат сохраненной ошибки без ее выброса."""
        if not self._done.wait(timeout):
            raise FutureTimeoutError(
                f"Future {self.id} not resolved within {timeout}s"
            )
        return self._error

    def add_done_callback(self, callback: Callable[["Future"], None]):
        """
        Регистрация callback'а на завершение.

        Если фьючерс уже завершен, callback вызывается сразу в текущем потоке.
        """
        with self._lock:
            if not self._done.is_set():
                self._callbacks.append(callback)
                return

        self._invoke_callback(callback)

    def set_result(self, result: Any):
        """Перевод в RESOLVED. Вызывается только воркером."""
        self._transition(FutureState.RESOLVED, result=result)

    def set_error(self, error: BaseException):
        """Перевод в FAILED. Вызывается только воркером."""
        self._transition(FutureState.FAILED, error=error)

    def _transition(
        self,
        state: FutureState,
        result: Any = None,
        error: Optional[BaseException] = None
    ):
        with self._lock:
            if self._state != FutureState.PENDING:
                raise FutureStateError(
                    f"Future {self.id} is already {self._state.value}, "
                    f"cannot move to {state.value}"
                )

            self._result = result
            self._error = error
            self._state = state
            self.resolved_at = datetime.now()
            self._done.set()

            callbacks = self._callbacks
            self._callbacks = []

        for callback in callbacks:
            self._invoke_callback(callback)

    def _invoke_callback(self, callback: Callable[["Future"], None]):
        try:
            callback(self)
        except Exception as e:
            logger.error(f"Error in done callback {callback} of future {self.id}: {e}")

    def __repr__(self) -> str:
        label = f" name={self.name!r}" if self.name else ""
        return f"Future(id={self.id}{label}, state={self._state.value})"


def is_resolved(future: Future) -> bool:
    """Неблокирующая проверка завершения фьючерса."""
    return future.is_resolved()


def value(future: Future, timeout: Optional[float] = None) -> Any:
    """Блокирующее получение значения фьючерса."""
    return future.value(timeout=timeout)


def resolved(futures: Iterable[Future]) -> List[bool]:
    """Флаги завершения для набора фьючерсов, без блокировки."""
    return [future.is_resolved() for future in futures]


def values(futures: Iterable[Future], timeout: Optional[float] = None) -> List[Any]:
    """
    Значения набора фьючерсов в исходном порядке.

    Args:
        futures: Фьючерсы
        timeout: Общий таймаут на все ожидание

    Returns:
        Список значений. Первая встреченная ошибка задачи выбрасывается.
    """
    deadline = None if timeout is None else time.monotonic() + timeout

    results = []
    for future in futures:
        remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
        results.append(future.value(timeout=remaining))
    return results
