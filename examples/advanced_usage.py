"""
Продвинутые примеры: политики насыщения, процессы, конфигурация.
"""

import math
import threading
import time

from future_pool import (
    Scheduler,
    Plan,
    DispatchPolicy,
    ExecutionBackend,
    PoolSaturatedError,
    FutureTimeoutError,
    load_config_from_env,
    setup_logging,
    values
)


def blocking_task(release: threading.Event) -> str:
    release.wait()
    return "done"


def saturation_policies():
    """Сравнение политик при заполненном пуле."""
    print("1. Политика REJECT:")
    release = threading.Event()
    with Scheduler(Plan(workers=1, policy=DispatchPolicy.REJECT)) as scheduler:
        first = scheduler.submit(blocking_task, release)
        try:
            scheduler.submit(blocking_task, release)
        except PoolSaturatedError as e:
            print(f"   Вторая задача отклонена: {e}")
        release.set()
        print(f"   Первая задача: {first.value()}")

    print("\n2. Политика QUEUE:")
    with Scheduler(Plan(workers=2, policy=DispatchPolicy.QUEUE)) as scheduler:
        start = time.time()
        futures = [scheduler.submit(time.sleep, 0.2) for _ in range(6)]
        print(f"   6 задач отправлены за {time.time() - start:.3f}с")
        values(futures)
        print(f"   Выполнены за {time.time() - start:.2f}с")


def timeouts():
    """Таймаут прекращает ожидание, но не задачу."""
    print("\n3. Таймаут ожидания:")
    with Scheduler(Plan(workers=1)) as scheduler:
        future = scheduler.submit(time.sleep, 0.5)
        try:
            future.value(timeout=0.1)
        except FutureTimeoutError:
            print("   Не дождались за 0.1с, задача продолжает работать")
        future.value()
        print(f"   Задача все равно завершилась: {future.state.value}")


def process_backend():
    """CPU-задачи в отдельных процессах."""
    print("\n4. Процессы:")
    with Scheduler(Plan(workers=2, backend=ExecutionBackend.PROCESS)) as scheduler:
        futures = scheduler.map(math.factorial, [500, 1000, 1500])
        print(f"   Количество цифр: {[len(str(v)) for v in values(futures)]}")


def reconfigure():
    """Смена числа воркеров дожидается уже принятых задач."""
    print("\n5. Реконфигурация:")
    with Scheduler(Plan(workers=1)) as scheduler:
        future = scheduler.submit(time.sleep, 0.2)
        scheduler.configure(4)
        print(f"   Задача завершена до смены емкости: {future.is_resolved()}")
        print(f"   Новая емкость: {scheduler.pool.capacity}")


def main():
    config = load_config_from_env()
    setup_logging(level=config.log_level)

    saturation_policies()
    timeouts()
    process_backend()
    reconfigure()


if __name__ == "__main__":
    main()
