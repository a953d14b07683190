"""
Тесты для WorkerPool и Scheduler.
"""

import logging
import math
import sys
import threading
import time
import pytest

from future_pool import (
    Scheduler,
    Config,
    Plan,
    DispatchPolicy,
    ExecutionBackend,
    WorkerPool,
    WorkerPoolConfig,
    Task,
    FutureState,
    InvalidConfigurationError,
    PoolSaturatedError,
    PoolShutdownError,
    values
)
from future_pool.core.worker_manager import WorkerManagerConfig
from future_pool.models.pool_metrics import PoolStatus


def wait_for(event: threading.Event) -> str:
    event.wait(timeout=10.0)
    return "released"


def make_pool(capacity: int, policy: DispatchPolicy = DispatchPolicy.BLOCK, **kwargs) -> WorkerPool:
    return WorkerPool(WorkerPoolConfig(plan=Plan(workers=capacity, policy=policy), **kwargs))


class TestWorkerPool:
    """Тесты для класса WorkerPool."""

    def test_initialization(self):
        pool = make_pool(2)

        assert pool.get_status() == PoolStatus.STOPPED
        assert pool.capacity == 2
        assert pool.busy_count == 0
        assert pool.get_worker_count() == 0
        assert not pool.is_running()

    def test_start_creates_one_worker_per_slot(self):
        with make_pool(3) as pool:
            assert pool.is_running()
            assert pool.get_worker_count() == 3

        assert pool.get_status() == PoolStatus.STOPPED
        assert pool.get_worker_count() == 0

    @pytest.mark.parametrize("capacity", [1, 2, 3])
    def test_capacity_tasks_do_not_block_submitter(self, capacity):
        """Тест: C задач в пуле емкости C принимаются без ожидания, C+1-я ждет слот."""
        release = threading.Event()

        with make_pool(capacity) as pool:
            start_time = time.time()
            futures = [pool.dispatch(Task(func=wait_for, args=(release,))) for _ in range(capacity)]
            assert time.time() - start_time < 1.0

            extra = []
            submitter = threading.Thread(
                target=lambda: extra.append(pool.dispatch(Task(func=wait_for, args=(release,))))
            )
            submitter.start()
            submitter.join(timeout=0.3)

            assert submitter.is_alive()
            assert extra == []
            assert pool.busy_count == capacity

            release.set()
            submitter.join(timeout=5.0)
            assert not submitter.is_alive()

            assert values(futures + extra, timeout=5.0) == ["released"] * (capacity + 1)

    def test_two_slots_three_tasks_take_two_units(self):
        """Тест: 3 задачи по одной единице времени на 2 слотах занимают около 2 единиц."""
        unit = 0.5

        def sleepy():
            time.sleep(unit)
            return 7

        with make_pool(2) as pool:
            start_time = time.time()
            futures = [pool.dispatch(Task(func=sleepy)) for _ in range(3)]
            assert values(futures) == [7, 7, 7]
            elapsed = time.time() - start_time

        assert elapsed >= 2 * unit * 0.9
        assert elapsed < 3 * unit

    def test_is_resolved_tracks_completion(self):
        release = threading.Event()

        with make_pool(1) as pool:
            future = pool.dispatch(Task(func=wait_for, args=(release,)))
            time.sleep(0.1)
            assert not future.is_resolved()
            assert future.state == FutureState.PENDING

            release.set()
            assert future.value(timeout=5.0) == "released"
            assert future.is_resolved()

    def test_value_does_not_rerun_task(self):
        calls = []

        def counted():
            calls.append(1)
            return len(calls)

        with make_pool(2) as pool:
            future = pool.dispatch(Task(func=counted))
            first = future.value(timeout=5.0)
            second = future.value(timeout=5.0)

        assert first == second == 1
        assert len(calls) == 1

    def test_failed_task_replays_same_error(self):
        error = RuntimeError("Тестовая ошибка")

        def failing():
            raise error

        with make_pool(1) as pool:
            future = pool.dispatch(Task(func=failing))

            for _ in range(2):
                with pytest.raises(RuntimeError) as exc_info:
                    future.value(timeout=5.0)
                assert exc_info.value is error

            assert future.state == FutureState.FAILED
            pool.wait_for_completion(timeout=5.0)
            assert pool.get_metrics()['total_tasks_failed'] == 1

    def test_unread_failure_is_never_surfaced(self):
        def failing():
            raise ValueError("never observed")

        with make_pool(1) as pool:
            future = pool.dispatch(Task(func=failing))
            assert pool.wait_for_completion(timeout=5.0)
            assert future.is_failed()

        # Выход из контекста и остановка пула не выбрасывают ошибку задачи
        assert pool.get_status() == PoolStatus.STOPPED

    def test_busy_slots_never_exceed_capacity(self):
        lock = threading.Lock()
        running = []
        peak = []

        def tracked():
            with lock:
                running.append(1)
                peak.append(len(running))
            time.sleep(0.02)
            with lock:
                running.pop()

        with make_pool(3) as pool:
            futures = [pool.dispatch(Task(func=tracked)) for _ in range(20)]
            values(futures, timeout=10.0)
            pool.wait_for_completion(timeout=5.0)
            metrics = pool.get_metrics()

        assert max(peak) <= 3
        assert metrics['max_busy_observed'] <= 3
        assert metrics['total_tasks_completed'] == 20

    def test_blocked_dispatchers_are_served_in_order(self):
        """Тест: ожидающие отправители получают слот в порядке прихода."""
        release = threading.Event()
        order = []

        with make_pool(1) as pool:
            first = pool.dispatch(Task(func=wait_for, args=(release,)))

            submitters = []
            for label in ["a", "b", "c"]:
                thread = threading.Thread(
                    target=pool.dispatch,
                    args=(Task(func=order.append, args=(label,)),)
                )
                thread.start()
                submitters.append(thread)
                time.sleep(0.1)

            release.set()
            for thread in submitters:
                thread.join(timeout=5.0)
            pool.wait_for_completion(timeout=5.0)

        assert first.value() == "released"
        assert order == ["a", "b", "c"]

    def test_reject_policy(self):
        release = threading.Event()

        with make_pool(1, DispatchPolicy.REJECT) as pool:
            first = pool.dispatch(Task(func=wait_for, args=(release,)))

            with pytest.raises(PoolSaturatedError):
                pool.dispatch(Task(func=lambda: "rejected"))

            assert pool.get_metrics()['total_tasks_rejected'] == 1
            assert pool.get_metrics()['total_tasks_submitted'] == 1

            release.set()
            assert first.value(timeout=5.0) == "released"
            pool.wait_for_completion(timeout=5.0)

            assert pool.dispatch(Task(func=lambda: "accepted")).value(timeout=5.0) == "accepted"

    def test_queue_policy_never_blocks(self):
        release = threading.Event()

        with make_pool(1, DispatchPolicy.QUEUE) as pool:
            start_time = time.time()
            futures = [pool.dispatch(Task(func=wait_for, args=(release,))) for _ in range(4)]
            assert time.time() - start_time < 0.5

            time.sleep(0.1)
            assert pool.busy_count == 1
            assert pool.get_queue_size() == 3
            assert pool.outstanding_count == 4

            release.set()
            assert values(futures, timeout=5.0) == ["released"] * 4
            assert pool.get_metrics()['max_busy_observed'] == 1

    def test_configure_rejects_invalid_capacity(self):
        pool = make_pool(2)

        for bad in [0, -1, 1.5, True, "2"]:
            with pytest.raises(InvalidConfigurationError):
                pool.configure(bad)

        assert pool.capacity == 2

    def test_configure_flushes_outstanding_work(self):
        def sleepy():
            time.sleep(0.3)
            return "flushed"

        with make_pool(1) as pool:
            future = pool.dispatch(Task(func=sleepy))
            pool.configure(3)

            assert future.is_resolved()
            assert future.value() == "flushed"
            assert pool.capacity == 3
            assert pool.get_worker_count() == 3

            futures = [pool.dispatch(Task(func=lambda: 1)) for _ in range(3)]
            assert values(futures, timeout=5.0) == [1, 1, 1]

    def test_dispatch_after_shutdown(self):
        pool = make_pool(1)
        pool.start()
        pool.shutdown()

        with pytest.raises(PoolShutdownError):
            pool.dispatch(Task(func=lambda: None))

    def test_dispatch_before_start(self):
        with pytest.raises(PoolShutdownError):
            make_pool(1).dispatch(Task(func=lambda: None))

    def test_shutdown_wakes_blocked_dispatcher(self):
        release = threading.Event()
        errors = []

        def blocked_dispatch():
            try:
                pool.dispatch(Task(func=lambda: None))
            except PoolShutdownError as e:
                errors.append(e)

        pool = make_pool(1)
        pool.start()
        first = pool.dispatch(Task(func=wait_for, args=(release,)))

        submitter = threading.Thread(target=blocked_dispatch)
        submitter.start()
        time.sleep(0.1)

        stopper = threading.Thread(target=pool.shutdown)
        stopper.start()

        submitter.join(timeout=5.0)
        assert len(errors) == 1

        release.set()
        stopper.join(timeout=5.0)
        assert first.value() == "released"
        assert pool.get_status() == PoolStatus.STOPPED

    def test_shutdown_without_wait_fails_queued_tasks(self):
        release = threading.Event()
        pool = make_pool(
            1,
            DispatchPolicy.QUEUE,
            worker_config=WorkerManagerConfig(join_timeout=0.2)
        )
        pool.start()

        running = pool.dispatch(Task(func=wait_for, args=(release,)))
        queued = [pool.dispatch(Task(func=lambda: "never")) for _ in range(2)]
        time.sleep(0.1)

        pool.shutdown(wait=False)

        for future in queued:
            with pytest.raises(PoolShutdownError):
                future.value(timeout=1.0)

        release.set()
        assert running.value(timeout=5.0) == "released"

    def test_shutdown_without_wait_does_not_join_busy_workers(self):
        """Тест: shutdown(wait=False) не ждет воркеров, занятых долгими задачами."""
        release = threading.Event()
        pool = make_pool(2, worker_config=WorkerManagerConfig(join_timeout=5.0))
        pool.start()

        running = [pool.dispatch(Task(func=wait_for, args=(release,))) for _ in range(2)]
        time.sleep(0.1)

        start_time = time.time()
        pool.shutdown(wait=False)
        assert time.time() - start_time < 1.0
        assert pool.get_status() == PoolStatus.STOPPED

        pool.start()
        try:
            assert pool.get_worker_count() == 2
            release.set()
            assert values(running, timeout=5.0) == ["released", "released"]
            assert pool.dispatch(Task(func=lambda: "again")).value(timeout=5.0) == "again"
        finally:
            release.set()
            pool.shutdown()

    @pytest.mark.parametrize("exit_error", [SystemExit(3), KeyboardInterrupt()])
    def test_task_raising_base_exception_keeps_slot(self, exit_error):
        """Тест: SystemExit из задачи хранится во фьючерсе, воркер продолжает работу."""
        def exiting():
            raise exit_error

        with make_pool(1, DispatchPolicy.QUEUE) as pool:
            failed = pool.dispatch(Task(func=exiting))
            following = pool.dispatch(Task(func=lambda: 42))

            assert following.value(timeout=5.0) == 42
            assert failed.state == FutureState.FAILED
            assert failed.error() is exit_error
            with pytest.raises(type(exit_error)):
                failed.value()

            pool.wait_for_completion(timeout=5.0)
            assert pool.busy_count == 0
            assert all(w.is_available() for w in pool.get_workers())

    def test_restart_after_shutdown(self):
        pool = make_pool(2)
        pool.start()
        pool.shutdown()
        pool.start()

        try:
            assert pool.dispatch(Task(func=lambda: "again")).value(timeout=5.0) == "again"
        finally:
            pool.shutdown()

    def test_metrics_collection(self):
        with make_pool(2) as pool:
            futures = [pool.dispatch(Task(func=pow, args=(i, 2))) for i in range(5)]
            values(futures, timeout=5.0)
            pool.wait_for_completion(timeout=5.0)
            metrics = pool.get_metrics()

        assert metrics['total_tasks_submitted'] == 5
        assert metrics['total_tasks_completed'] == 5
        assert metrics['capacity'] == 2
        assert metrics['channel_metrics']['tasks_retrieved'] == 5
        assert metrics['execution_metrics']['successful_executions'] == 5
        assert metrics['worker_metrics']['total_workers'] == 2


class TestScheduler:
    """Тесты для Scheduler."""

    def test_submit_and_value(self):
        with Scheduler(Plan(workers=2)) as scheduler:
            future = scheduler.submit(pow, 2, 10, name="power")

            assert future.name == "power"
            assert future.value(timeout=5.0) == 1024

    def test_arguments_are_captured_at_submission(self):
        data = [1, 2, 3]

        with Scheduler(Plan(workers=1)) as scheduler:
            future = scheduler.submit(sum, list(data))
            data.append(100)
            assert future.value(timeout=5.0) == 6

    def test_keyword_arguments(self):
        def greet(who, punctuation="."):
            return f"hello {who}{punctuation}"

        with Scheduler(Plan(workers=1)) as scheduler:
            assert scheduler.submit(greet, "pool", punctuation="!").value(timeout=5.0) == "hello pool!"

    def test_pool_is_created_lazily(self):
        scheduler = Scheduler(Plan(workers=1))
        assert scheduler.pool is None
        assert scheduler.get_metrics() == {}

        scheduler.submit(lambda: None).value(timeout=5.0)
        assert scheduler.pool is not None
        scheduler.shutdown()
        assert scheduler.pool is None

    def test_non_callable_rejected(self):
        with Scheduler(Plan(workers=1)) as scheduler:
            with pytest.raises(ValueError):
                scheduler.submit(42)

    def test_map_preserves_order(self):
        with Scheduler(Plan(workers=3)) as scheduler:
            futures = scheduler.map(lambda x: x * 2, range(10))

            assert [f.name for f in futures][:2] == ["<lambda>[0]", "<lambda>[1]"]
            assert values(futures, timeout=5.0) == [x * 2 for x in range(10)]

    def test_configure_zero_raises_and_accepts_nothing(self):
        scheduler = Scheduler(Plan(workers=2))

        with pytest.raises(InvalidConfigurationError):
            scheduler.configure(0)

        assert scheduler.plan.workers == 2
        assert scheduler.pool is None

    def test_plan_with_zero_workers_raises(self):
        with pytest.raises(InvalidConfigurationError):
            Scheduler(Plan(workers=0))

    def test_configure_running_scheduler(self):
        with Scheduler(Plan(workers=1)) as scheduler:
            slow = scheduler.submit(time.sleep, 0.2)
            scheduler.configure(4)

            assert slow.is_resolved()
            assert scheduler.plan.workers == 4
            assert scheduler.pool.capacity == 4

    def test_set_plan_flushes_old_pool(self):
        with Scheduler(Plan(workers=1)) as scheduler:
            future = scheduler.submit(time.sleep, 0.2)
            old_pool = scheduler.pool

            scheduler.set_plan(Plan(workers=2, policy=DispatchPolicy.QUEUE))

            assert future.is_resolved()
            assert old_pool.get_status() == PoolStatus.STOPPED

            assert scheduler.submit(lambda: "new").value(timeout=5.0) == "new"
            assert scheduler.pool is not old_pool
            assert scheduler.pool.policy == DispatchPolicy.QUEUE

    def test_independent_schedulers(self):
        """Тест: у каждого планировщика свой план, общего состояния нет."""
        with Scheduler(Plan(workers=1)) as one, Scheduler(Plan(workers=3)) as three:
            one.submit(lambda: None).value(timeout=5.0)
            three.submit(lambda: None).value(timeout=5.0)

            assert one.pool.capacity == 1
            assert three.pool.capacity == 3
            assert one.pool is not three.pool

    def test_sequential_plan(self):
        with Scheduler(Plan.sequential()) as scheduler:
            futures = scheduler.map(str, [1, 2, 3])
            assert values(futures, timeout=5.0) == ["1", "2", "3"]
            assert scheduler.get_metrics()['max_busy_observed'] == 1

    def test_process_backend(self):
        with Scheduler(Plan(workers=2, backend=ExecutionBackend.PROCESS)) as scheduler:
            futures = scheduler.map(math.factorial, [5, 10])
            assert values(futures, timeout=30.0) == [120, 3628800]

            failed = scheduler.submit(math.factorial, -1)
            with pytest.raises(ValueError):
                failed.value(timeout=30.0)

    def test_wait_for_completion(self):
        scheduler = Scheduler(Plan(workers=2))
        assert scheduler.wait_for_completion(timeout=0.1)

        try:
            for _ in range(4):
                scheduler.submit(time.sleep, 0.05)
            assert scheduler.wait_for_completion(timeout=5.0)
            assert scheduler.pool.outstanding_count == 0
        finally:
            scheduler.shutdown()

    def test_sys_exit_in_task_does_not_stop_scheduler(self):
        with Scheduler(Plan(workers=1, policy=DispatchPolicy.QUEUE)) as scheduler:
            exited = scheduler.submit(sys.exit, 3)

            assert scheduler.submit(lambda: 42).value(timeout=5.0) == 42
            with pytest.raises(SystemExit):
                exited.value()
            assert scheduler.pool.get_worker_count() == 1

    def test_shutdown_follows_configured_wait(self):
        """Тест: shutdown() без аргумента берет wait_for_pending_tasks из конфигурации."""
        release = threading.Event()
        config = Config.from_dict({"workers": 1, "shutdown": {"wait_for_pending_tasks": False}})
        scheduler = Scheduler.from_config(config)
        future = scheduler.submit(wait_for, release)
        time.sleep(0.1)

        try:
            start_time = time.time()
            scheduler.shutdown()
            assert time.time() - start_time < 1.0
            assert not future.is_resolved()
        finally:
            release.set()

        assert future.value(timeout=5.0) == "released"

    def test_from_config_applies_log_level(self):
        package_logger = logging.getLogger("future_pool")
        previous_level = package_logger.level

        try:
            Scheduler.from_config(Config(workers=1, log_level="error"))
            assert package_logger.level == logging.ERROR
        finally:
            package_logger.setLevel(previous_level)
