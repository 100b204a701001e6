"""Bounded fan-out that always joins its workers."""

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Hashable, Optional

logger = logging.getLogger(__name__)


class TaskGroup:
    """Run keyed units of work on a bounded thread pool.

    Every ``submit`` returns the future for that unit. Leaving the ``with``
    block waits for all of them, so callers never return while work is
    still running. Results and exceptions are collected per key.

    Example:
        with TaskGroup(max_workers=4) as group:
            for merchant_id in merchant_ids:
                group.submit(merchant_id, generate, merchant_id)
        results, errors = group.results(), group.errors()
    """

    def __init__(self, max_workers: int = 8, name: str = "settleit"):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=name)
        self._futures: dict[Hashable, Future] = {}
        self._joined = False

    def __enter__(self) -> "TaskGroup":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.join()

    def submit(self, key: Hashable, fn: Callable[..., Any], *args, **kwargs) -> Future:
        if self._joined:
            raise RuntimeError("TaskGroup already joined")
        if key in self._futures:
            raise ValueError(f"Duplicate task key: {key!r}")
        future = self._executor.submit(fn, *args, **kwargs)
        self._futures[key] = future
        return future

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for every submitted unit, then release the pool."""
        if self._joined:
            return
        wait(list(self._futures.values()), timeout=timeout)
        self._executor.shutdown(wait=True)
        self._joined = True
        logger.debug("Task group joined", extra={"tasks": len(self._futures)})

    def results(self) -> dict[Hashable, Any]:
        """Return values of units that completed without raising."""
        self.join()
        return {
            key: future.result()
            for key, future in self._futures.items()
            if future.exception() is None
        }

    def errors(self) -> dict[Hashable, BaseException]:
        """Return exceptions of units that raised."""
        self.join()
        return {
            key: future.exception()
            for key, future in self._futures.items()
            if future.exception() is not None
        }
