"""Write scheduler: bounded thread pool + write handles.

Manifesto:
    ``save()`` and ``delete()`` never block the caller on the database.
    Each call enqueues one unit of work on a small shared pool and returns
    a :class:`WriteHandle` straight away; the outcome (the saved entity or
    a :class:`~recordspine.core.errors.WriteError`) is delivered through
    that handle and nowhere else.

ARCHITECTURE
────────────
::

    WriteScheduler(max_workers=4)
      ├── .submit(fn, ...)   ─ enqueue on the ThreadPool, return WriteHandle
      └── .shutdown()        ─ drain pending writes, stop workers

    WriteHandle
      ├── .result(timeout)   ─ block for the outcome (raises the failure)
      ├── .exception()       ─ the failure, or None
      ├── .done()
      ├── .add_done_callback(fn)
      └── await handle       ─ from asyncio code

Writes enqueued concurrently are not ordered relative to each other.

Tags:
    persistence, concurrency, thread-pool, futures, asyncio, recordspine

Doc-Types:
    api-reference
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable, Generator
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Generic, TypeVar

from recordspine.core.errors import DatabaseConnectionError
from recordspine.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class WriteHandle(Generic[T]):
    """Completion handle of one enqueued write.

    Backed by a :class:`concurrent.futures.Future`; there is
    no ``cancel()``.
    """

    __slots__ = ("_future",)

    def __init__(self, future: Future):
        self._future = future

    @classmethod
    def failed(cls, error: BaseException) -> WriteHandle[Any]:
        """A handle that is already completed with ``error``."""
        future: Future = Future()
        future.set_exception(error)
        return cls(future)

    @classmethod
    def completed(cls, value: T) -> WriteHandle[T]:
        """A handle that is already completed with ``value``."""
        future: Future = Future()
        future.set_result(value)
        return cls(future)

    def result(self, timeout: float | None = None) -> T:
        """Wait for the write and return its value, raising its failure."""
        return self._future.result(timeout)

    def exception(self, timeout: float | None = None) -> BaseException | None:
        """Wait for the write and return its failure (None on success)."""
        return self._future.exception(timeout)

    def done(self) -> bool:
        return self._future.done()

    def succeeded(self) -> bool:
        return self._future.done() and self._future.exception() is None

    def add_done_callback(self, fn: Callable[[WriteHandle[T]], Any]) -> None:
        """Call ``fn(handle)`` once the write completes (immediately if it has)."""
        self._future.add_done_callback(lambda _future: fn(self))

    def __await__(self) -> Generator[Any, None, T]:
        return asyncio.wrap_future(self._future).__await__()

    def __repr__(self) -> str:
        if not self._future.done():
            state = "pending"
        elif self._future.exception() is not None:
            state = f"failed: {self._future.exception()!r}"
        else:
            state = "done"
        return f"<WriteHandle {state}>"


class WriteScheduler:
    """ThreadPoolExecutor shared by every entity type of one context.

    Example:
        >>> scheduler = WriteScheduler(max_workers=4)
        >>> handle = scheduler.submit(adapter.execute, "DELETE FROM players")
        >>> handle.result(timeout=5)
        >>> scheduler.shutdown()
    """

    def __init__(self, max_workers: int = 4, *, thread_name_prefix: str = "recordspine-write"):
        """Initialize with worker pool.

        Args:
            max_workers: ThreadPool size (default: 4)
            thread_name_prefix: Name prefix of the worker threads
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.max_workers = max_workers
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=thread_name_prefix)
        self._lock = threading.Lock()
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    def submit(self, fn: Callable[..., T], *args: Any, **kwargs: Any) -> WriteHandle[T]:
        """Enqueue ``fn(*args, **kwargs)`` and return its handle immediately.

        After :meth:`shutdown` the returned handle is already failed with
        :class:`DatabaseConnectionError`.
        """
        with self._lock:
            if self._closed:
                return WriteHandle.failed(
                    DatabaseConnectionError("Write scheduler has been shut down", retryable=False)
                )
            future = self._pool.submit(fn, *args, **kwargs)
        return WriteHandle(future)

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting writes; with ``wait`` drain everything already enqueued."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._pool.shutdown(wait=wait)
        logger.debug("scheduler.shutdown", workers=self.max_workers, drained=wait)

    def __enter__(self) -> WriteScheduler:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown(wait=True)


__all__ = [
    "WriteHandle",
    "WriteScheduler",
]
