"""
Базовый пример использования фьючерсов.
"""

import time
from future_pool import Scheduler, Plan, is_resolved, values


def slow_square(x: int) -> int:
    """Задача, имитирующая работу."""
    time.sleep(0.5)
    return x * x


def failing_task(x: int) -> int:
    raise ValueError(f"Ошибка в задаче {x}")


def main():
    """Основная функция с примерами использования."""
    print("=== Базовый пример фьючерсов ===\n")

    with Scheduler(Plan(workers=2)) as scheduler:
        # Пример 1: три задачи на двух воркерах
        print("1. Три задачи по 0.5с на двух воркерах:")
        start = time.time()
        futures = [scheduler.submit(slow_square, i, name=f"square_{i}") for i in range(3)]
        print(f"   Сразу после отправки resolved: {[is_resolved(f) for f in futures]}")
        print(f"   Значения: {values(futures)}")
        print(f"   Заняло {time.time() - start:.2f}с (а не 1.5с)")

        # Пример 2: ошибка всплывает только при чтении значения
        print("\n2. Ошибка задачи:")
        future = scheduler.submit(failing_task, 7)
        try:
            future.value()
        except ValueError as e:
            print(f"   value() выбросил: {e}")

        # Пример 3: map по списку
        print("\n3. map:")
        print(f"   {values(scheduler.map(slow_square, [10, 20, 30, 40]))}")

        metrics = scheduler.get_metrics()
        print("\n=== Метрики пула ===")
        print(f"Всего задач отправлено: {metrics['total_tasks_submitted']}")
        print(f"Задач завершено: {metrics['total_tasks_completed']}")
        print(f"Задач с ошибками: {metrics['total_tasks_failed']}")
        print(f"Максимум занятых слотов: {metrics['max_busy_observed']} из {metrics['capacity']}")

    print("\nПланировщик остановлен")


if __name__ == "__main__":
    main()
