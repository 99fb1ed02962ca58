"""Bounded background pool for copying finished clips into local storage."""

import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from typing import Any

from ugc_engine.config import settings
from ugc_engine.logging import get_logger

logger = get_logger(__name__)


class DownloadPool:
    """Runs downloads on a fixed number of threads and tracks their futures.

    Polling submits a download and moves on; ``wait`` lets tests and the
    synchronous CLI path block until the copies have landed.
    """

    def __init__(self, max_workers: int | None = None) -> None:
        self.max_workers = max_workers or settings.download_workers
        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="clip-download"
        )
        self._futures: set[Future[Any]] = set()
        self._lock = threading.Lock()
        self._closed = False

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future[Any]:
        with self._lock:
            if self._closed:
                raise RuntimeError("Download pool is shut down")
            future = self._executor.submit(fn, *args, **kwargs)
            self._futures.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future[Any]) -> None:
        with self._lock:
            self._futures.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("download_task_crashed", error=str(exc))

    @property
    def pending(self) -> int:
        with self._lock:
            return len(self._futures)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until every submitted download has finished.

        Returns:
            True if nothing is still running when the call returns
        """
        with self._lock:
            futures = list(self._futures)
        if not futures:
            return True
        _, not_done = wait_futures(futures, timeout=timeout)
        return not not_done

    def shutdown(self, wait: bool = True) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        logger.info("download_pool_shutdown", pending=self.pending, wait=wait)
        self._executor.shutdown(wait=wait, cancel_futures=not wait)
