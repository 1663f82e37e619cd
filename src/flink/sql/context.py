"""
Cancellation and deadline handling for blocking gateway calls.

Every network call and every poll backoff accepts an ExecutionContext. A
context can be cancelled from another thread, may carry a deadline, and is
consulted before each request, to bound socket timeouts, and while waiting
between status polls. Callers that block on something other than the context
itself register a cancel callback to be woken when the context is cancelled.
"""

import threading
import time
from typing import Callable, List, Optional

from flink.sql.exc import ContextCanceledError, DeadlineExceededError, Error


class ExecutionContext:
    """Cancellation signal plus an optional monotonic deadline."""

    def __init__(self, deadline: Optional[float] = None):
        self._deadline = deadline
        self._cancel_event = threading.Event()
        self._callbacks_lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    @classmethod
    def background(cls) -> "ExecutionContext":
        """A context that never expires on its own."""
        return cls()

    @classmethod
    def with_timeout(cls, seconds: Optional[float]) -> "ExecutionContext":
        if seconds is None:
            return cls()
        return cls(deadline=time.monotonic() + seconds)

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def done(self) -> bool:
        return self.cancelled or self.expired

    def cancel(self) -> None:
        """
        Cancel the context and run the registered cancel callbacks.

        Safe to call from any thread, more than once. Callbacks run once, on
        the thread of the first call.
        """
        with self._callbacks_lock:
            if self._cancel_event.is_set():
                return
            self._cancel_event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def add_cancel_callback(self, callback: Callable[[], None]) -> None:
        """
        Register `callback` to run when the context is cancelled.

        If the context is already cancelled the callback runs immediately.
        """
        with self._callbacks_lock:
            if not self._cancel_event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def remove_cancel_callback(self, callback: Callable[[], None]) -> None:
        with self._callbacks_lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def remaining(self) -> Optional[float]:
        """Seconds left until the deadline, None without deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def error(self) -> Optional[Error]:
        if self.cancelled:
            return ContextCanceledError("Execution context was cancelled")
        if self.expired:
            return DeadlineExceededError("Execution context deadline exceeded")
        return None

    def check(self) -> None:
        err = self.error()
        if err is not None:
            raise err

    def wait(self, seconds: float) -> bool:
        """
        Sleep for up to `seconds`, returning early if the context fires.

        Returns True if the full interval elapsed, False if the context was
        cancelled or its deadline passed.
        """
        if self.done:
            return False
        remaining = self.remaining()
        if remaining is not None and remaining < seconds:
            self._cancel_event.wait(remaining)
            return not self.done
        return not self._cancel_event.wait(seconds)

    def timeout_for(self, default: Optional[float]) -> Optional[float]:
        """The socket timeout for a call: `default` capped by the deadline."""
        remaining = self.remaining()
        if remaining is None:
            return default
        if default is None:
            return remaining
        return min(default, remaining)
