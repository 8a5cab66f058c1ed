# Copyright (c) 2025 CoReason, Inc.
#
# This software is proprietary and dual-licensed.
# Licensed under the Prosperity Public License 3.0 (the "License").
# A copy of the license is available at https://prosperitylicense.com/versions/3.0.0
# For details, see the LICENSE file.
# Commercial use beyond a 30-day trial requires a separate license.
#
# Source Code: https://github.com/CoReason-AI/argon_client

"""
BackgroundWorker component for running blocking follow-up work off the event loop.
"""

import queue
import threading
from collections.abc import Callable

from argon_client.exceptions import ArgonError
from argon_client.utils.logger import logger

WorkerTask = Callable[[], None]


class BackgroundWorker:
    """
    A single dedicated thread draining a FIFO task queue.

    The loop waits up to `poll_interval` seconds for a task, runs it, and loops.
    `stop()` lets the loop drain every queued task before the thread is joined.

    Attributes:
        name (str): Name of the worker thread.
        poll_interval (float): Seconds to wait for a task on each loop iteration.
    """

    def __init__(self, name: str = "argon-worker", poll_interval: float = 0.25) -> None:
        self.name = name
        self.poll_interval = poll_interval
        self._queue: queue.Queue[WorkerTask] = queue.Queue()
        self._stop_event = threading.Event()
        self._state_lock = threading.Lock()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive() and not self._stop_event.is_set()

    def start(self) -> None:
        """Starts the worker thread. Calling it on a running worker does nothing."""
        with self._state_lock:
            if self._thread is not None and self._thread.is_alive():
                return
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
            self._thread.start()
            logger.debug(f"Background worker '{self.name}' started")

    def push(self, task: WorkerTask) -> None:
        """
        Queues a task for execution on the worker thread.

        Raises:
            ArgonError: If the worker is stopped or was never started.
        """
        with self._state_lock:
            if not self.running:
                raise ArgonError(f"Background worker '{self.name}' is not running")
            self._queue.put(task)

    def wait_idle(self) -> None:
        """Blocks until every task queued so far has finished."""
        self._queue.join()

    def stop(self) -> None:
        """Drains the queue and joins the worker thread."""
        with self._state_lock:
            thread = self._thread
            if thread is None:
                return
            self._stop_event.set()

        thread.join()
        with self._state_lock:
            self._thread = None
        logger.debug(f"Background worker '{self.name}' stopped")

    def _run(self) -> None:
        while True:
            try:
                task = self._queue.get(timeout=self.poll_interval)
            except queue.Empty:
                if self._stop_event.is_set():
                    break
                continue

            try:
                task()
            except Exception:
                logger.exception(f"Background task failed on worker '{self.name}'")
            finally:
                self._queue.task_done()
