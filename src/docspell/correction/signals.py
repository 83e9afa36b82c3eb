"""Termination signal deferral around atomic file writes."""

from __future__ import annotations

from contextlib import contextmanager
import logging
import signal
import threading
from typing import Any, Iterator

LOGGER = logging.getLogger(__name__)

_HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class _WriteShield:
    """Counts in-flight writes and remembers a deferred exit request."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._writes = 0
        self._exit_requested = False

    @property
    def writes_in_progress(self) -> int:
        with self._lock:
            return self._writes

    @property
    def exit_requested(self) -> bool:
        with self._lock:
            return self._exit_requested

    def enter(self) -> None:
        with self._lock:
            self._writes += 1

    def leave(self) -> None:
        with self._lock:
            self._writes -= 1

    def take_exit(self) -> bool:
        """Consume a deferred exit request once no write is in progress."""

        with self._lock:
            due = self._exit_requested and self._writes == 0
            if due:
                self._exit_requested = False
            return due

    def request_exit(self) -> bool:
        """Record an exit request; True when it can be honoured right away."""

        with self._lock:
            self._exit_requested = True
            return self._writes == 0

    def reset(self) -> None:
        with self._lock:
            self._exit_requested = False


_SHIELD = _WriteShield()


def writes_in_progress() -> int:
    return _SHIELD.writes_in_progress


def exit_requested() -> bool:
    return _SHIELD.exit_requested


def take_exit_request() -> bool:
    """True once per deferred exit, after the last in-flight write finished."""

    return _SHIELD.take_exit()


@contextmanager
def deferred_signals() -> Iterator[None]:
    """Hold back a pending hard exit until the wrapped write completes.

    Only the main thread raises the deferred KeyboardInterrupt. Writes from
    worker threads leave the request in place for ``take_exit_request``.
    """

    _SHIELD.enter()
    try:
        yield
    finally:
        _SHIELD.leave()
    if threading.current_thread() is threading.main_thread() and _SHIELD.take_exit():
        raise KeyboardInterrupt


class SignalGuard:
    """Route SIGINT/SIGTERM to a cancellation flag for the duration of a run.

    The first signal only sets ``cancel_event``. A second one interrupts the
    run, but never while an atomic write is in progress.
    """

    def __init__(self, cancel_event: threading.Event) -> None:
        self._cancel_event = cancel_event
        self._previous: dict[int, Any] = {}

    def __enter__(self) -> "SignalGuard":
        self.install()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.restore()

    def install(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            LOGGER.debug("Signal handlers can only be installed from the main thread")
            return
        _SHIELD.reset()
        for signum in _HANDLED_SIGNALS:
            self._previous[signum] = signal.signal(signum, self._handle)

    def restore(self) -> None:
        _SHIELD.reset()
        for signum, handler in self._previous.items():
            signal.signal(signum, handler)
        self._previous.clear()

    def _handle(self, signum: int, frame: object) -> None:
        if not self._cancel_event.is_set():
            LOGGER.warning("Received signal %d, finishing in-flight files before stopping", signum)
            self._cancel_event.set()
            return
        if _SHIELD.request_exit():
            raise KeyboardInterrupt
        LOGGER.warning("Received signal %d, exiting once pending writes complete", signum)
