"""
Request coalescing (Singleflight) for caller threads.

When several threads ask for the same key at once, only the first one (the
leader) runs the function; the others block until it finishes and receive the
same value or the same exception.
"""
import logging
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Callable, Dict, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class SingleflightResult(Generic[T]):
    """Result of a singleflight operation."""

    value: T
    """The result value."""

    shared: bool
    """Whether this caller joined a call led by another thread."""

    subscribers: int
    """Number of callers that shared this result."""


@dataclass
class _InFlightCall:
    future: Future = field(default_factory=Future)
    subscribers: int = 1
    started_at: float = field(default_factory=time.monotonic)


class Singleflight:
    """
    Per-key in-flight suppression.

    Example:
        sf = Singleflight()
        result = sf.do("svc-1", lambda: fetch_token("svc-1"))
        result.value   # token
        result.shared  # True if another thread did the fetch
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._in_flight: Dict[str, _InFlightCall] = {}

    def do(self, key: str, fn: Callable[[], T]) -> SingleflightResult[T]:
        """Run ``fn`` unless a call for ``key`` is already running, then share its outcome."""
        with self._lock:
            call = self._in_flight.get(key)
            leader = call is None
            if leader:
                call = self._in_flight[key] = _InFlightCall()
            else:
                call.subscribers += 1

        if not leader:
            logger.debug(f"Singleflight.do: joining in-flight call for '{key}'")
            value = call.future.result()
            return SingleflightResult(value=value, shared=True, subscribers=call.subscribers)

        try:
            value = fn()
        except BaseException as error:
            with self._lock:
                self._in_flight.pop(key, None)
            call.future.set_exception(error)
            raise

        with self._lock:
            self._in_flight.pop(key, None)
            subscribers = call.subscribers
        call.future.set_result(value)

        logger.debug(
            f"Singleflight.do: completed '{key}' for {subscribers} subscribers "
            f"in {time.monotonic() - call.started_at:.3f}s"
        )
        return SingleflightResult(value=value, shared=False, subscribers=subscribers)

    def is_in_flight(self, key: str) -> bool:
        """Check if a call for ``key`` is currently running."""
        with self._lock:
            return key in self._in_flight

    def get_stats(self) -> dict:
        """Get statistics about in-flight calls."""
        with self._lock:
            return {"in_flight": len(self._in_flight)}
