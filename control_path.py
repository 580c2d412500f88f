"""Single-threaded executor that serializes session control work."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ControlPath:
    """Everything submitted here runs one at a time, in submission order.

    ``call`` blocks the caller until the work has run and re-raises its
    exception. Calling it from the control thread itself runs the work inline,
    since waiting on our own queue would deadlock.
    """

    def __init__(self, name: str = "session-control") -> None:
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=name)
        self._thread_ident: Optional[int] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def on_path(self) -> bool:
        return threading.get_ident() == self._thread_ident

    def call(self, fn: Callable[..., T], *args: Any, timeout: Optional[float] = None) -> T:
        if self.on_path():
            return fn(*args)
        return self._executor.submit(self._run, fn, *args).result(timeout=timeout)

    def post(self, fn: Callable[..., Any], *args: Any) -> Optional[Future]:
        try:
            future = self._executor.submit(self._run, fn, *args)
        except RuntimeError:
            logger.debug("control path closed, dropping %s", getattr(fn, "__name__", fn))
            return None
        future.add_done_callback(self._log_failure)
        return future

    def flush(self, timeout: Optional[float] = None) -> None:
        if self.on_path() or self._closed:
            return
        self._executor.submit(lambda: None).result(timeout=timeout)

    def shutdown(self) -> None:
        self._closed = True
        self._executor.shutdown(wait=not self.on_path())

    def _run(self, fn: Callable[..., T], *args: Any) -> T:
        self._thread_ident = threading.get_ident()
        return fn(*args)

    @staticmethod
    def _log_failure(future: Future) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("control path task failed", exc_info=exc)
