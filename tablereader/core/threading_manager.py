"""Debounced, cancellable request execution on a bounded thread pool."""

import threading
import time
import concurrent.futures
from typing import Callable, Any, Optional, Dict, Hashable
from dataclasses import dataclass, field
import logging

from .constants import DEFAULT_MAX_WORKERS, DEFAULT_DEBOUNCE_SECONDS
from .exceptions import RequestCancelledError

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag handed to every running request."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RequestCancelledError("Request was superseded")


@dataclass
class PendingRequest:
    """Bookkeeping for one submitted request."""
    key: Hashable
    func: Callable
    args: tuple
    kwargs: dict
    future: concurrent.futures.Future
    token: CancellationToken = field(default_factory=CancellationToken)
    timer: Optional[threading.Timer] = None
    created_at: float = field(default_factory=time.monotonic)


class DebouncedExecutor:
    """Runs at most one request per key, debounced, on a shared bounded pool.

    Submitting for a key that already has a pending or running request
    cancels the older one: its future is cancelled, its token is set and
    any result it still produces is discarded. The callable receives the
    token as the ``token`` keyword argument.
    """

    def __init__(self,
                 max_workers: int = DEFAULT_MAX_WORKERS,
                 debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
                 thread_name_prefix: str = "Recognizer"):
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.max_workers = max_workers
        self.debounce_seconds = max(0.0, float(debounce_seconds))

        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix=thread_name_prefix)
        self._lock = threading.Lock()
        self._pending: Dict[Hashable, PendingRequest] = {}
        self._shutdown = False
        self._stats = {
            'submitted': 0,
            'executed': 0,
            'superseded': 0,
            'delivered': 0,
            'failed': 0,
        }

    def submit(self, key: Hashable, func: Callable, *args, **kwargs) -> concurrent.futures.Future:
        """Schedule `func` for `key` after the debounce delay and return its future."""
        future: concurrent.futures.Future = concurrent.futures.Future()
        request = PendingRequest(key=key, func=func, args=args, kwargs=kwargs, future=future)

        with self._lock:
            if self._shutdown:
                raise RuntimeError("Cannot submit after shutdown")
            previous = self._pending.get(key)
            if previous is not None:
                self._supersede(previous)
            self._pending[key] = request
            self._stats['submitted'] += 1

            timer = threading.Timer(self.debounce_seconds, self._dispatch, args=(request,))
            timer.daemon = True
            request.timer = timer
            timer.start()

        if previous is not None:
            self._release(previous)
        logger.debug("Scheduled request for %s", key)
        return future

    def _supersede(self, request: PendingRequest) -> None:
        # Caller holds the lock and must _release the request once it is dropped
        request.token.cancel()
        self._stats['superseded'] += 1

    @staticmethod
    def _release(request: PendingRequest) -> None:
        # Future.cancel() runs done-callbacks inline, so never under the lock
        if request.timer is not None:
            request.timer.cancel()
        request.future.cancel()

    def _is_current(self, request: PendingRequest) -> bool:
        return self._pending.get(request.key) is request and not request.token.cancelled

    def _dispatch(self, request: PendingRequest) -> None:
        """Timer callback: hand the request to the pool if it is still current."""
        with self._lock:
            if self._shutdown or not self._is_current(request):
                return
            try:
                self._executor.submit(self._run, request)
                return
            except RuntimeError:
                logger.warning("Executor rejected request for %s", request.key)
                self._pending.pop(request.key, None)
        request.future.cancel()

    def _run(self, request: PendingRequest) -> None:
        if request.token.cancelled:
            return

        with self._lock:
            self._stats['executed'] += 1

        result: Any = None
        error: Optional[BaseException] = None
        try:
            result = request.func(*request.args, token=request.token, **request.kwargs)
        except RequestCancelledError:
            logger.debug("Request for %s cancelled while running", request.key)
            return
        except Exception as e:
            error = e

        with self._lock:
            current = self._is_current(request)
            if current:
                del self._pending[request.key]
                self._stats['failed' if error is not None else 'delivered'] += 1

        if not current:
            logger.debug("Discarding superseded result for %s", request.key)
            return

        try:
            if error is not None:
                logger.error(f"Request for {request.key} failed: {error}")
                request.future.set_exception(error)
            else:
                request.future.set_result(result)
        except concurrent.futures.InvalidStateError:
            logger.debug("Future for %s was cancelled before delivery", request.key)

    def pending_keys(self):
        with self._lock:
            return list(self._pending.keys())

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            stats = dict(self._stats)
            stats['pending'] = len(self._pending)
        stats['max_workers'] = self.max_workers
        stats['debounce_seconds'] = self.debounce_seconds
        return stats

    def shutdown(self, wait: bool = True) -> None:
        """Cancel everything pending and stop the pool."""
        with self._lock:
            if self._shutdown:
                return
            self._shutdown = True
            dropped = list(self._pending.values())
            for request in dropped:
                self._supersede(request)
            self._pending.clear()
        for request in dropped:
            self._release(request)
        self._executor.shutdown(wait=wait)
        logger.info("Recognition executor shut down")
