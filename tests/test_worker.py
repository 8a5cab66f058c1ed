# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/argon_client

import threading
import time
from collections.abc import Generator

import pytest

from argon_client.exceptions import ArgonError
from argon_client.worker import BackgroundWorker


@pytest.fixture
def worker() -> Generator[BackgroundWorker, None, None]:
    w = BackgroundWorker(name="test-worker", poll_interval=0.01)
    w.start()
    yield w
    w.stop()


def test_runs_tasks_in_fifo_order_on_worker_thread(worker: BackgroundWorker) -> None:
    seen: list[int] = []
    threads: set[str] = set()

    def task(i: int) -> None:
        seen.append(i)
        threads.add(threading.current_thread().name)

    for i in range(20):
        worker.push(lambda i=i: task(i))
    worker.wait_idle()

    assert seen == list(range(20))
    assert threads == {"test-worker"}


def test_stop_drains_queue_without_running_twice() -> None:
    worker = BackgroundWorker(poll_interval=0.01)
    worker.start()
    counts: dict[int, int] = {}

    def task(i: int) -> None:
        time.sleep(0.001)
        counts[i] = counts.get(i, 0) + 1

    for i in range(50):
        worker.push(lambda i=i: task(i))
    worker.stop()

    assert counts == {i: 1 for i in range(50)}
    assert not worker.running


def test_failing_task_does_not_stop_worker(worker: BackgroundWorker) -> None:
    done = threading.Event()

    def boom() -> None:
        raise RuntimeError("disk full")

    worker.push(boom)
    worker.push(done.set)

    assert done.wait(timeout=2)
    assert worker.running


def test_push_requires_running_worker() -> None:
    worker = BackgroundWorker()
    with pytest.raises(ArgonError, match="not running"):
        worker.push(lambda: None)

    worker.start()
    worker.stop()
    with pytest.raises(ArgonError, match="not running"):
        worker.push(lambda: None)


def test_start_is_idempotent_and_restartable() -> None:
    worker = BackgroundWorker(poll_interval=0.01)
    worker.start()
    first = worker._thread
    worker.start()
    assert worker._thread is first

    worker.stop()
    worker.stop()  # no-op on a stopped worker

    worker.start()
    assert worker.running
    done = threading.Event()
    worker.push(done.set)
    assert done.wait(timeout=2)
    worker.stop()
