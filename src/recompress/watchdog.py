"""Stall watchdog guarding the first read from the input.

A blocking read on a pipe that is never written to and never closed would
hang forever. The watchdog arms a single-shot timer before that read; if
the read has not returned when the timer fires, the process is terminated
on the spot with ``EXIT_STALLED``. Open resources are not cleaned up and
buffered output is not flushed.

The only state shared between the reading thread and the timer thread is
the ``threading.Event`` liveness flag.

Example:
    >>> watchdog = StallWatchdog(timeout=5.0)
    >>> with watchdog.guard():
    ...     prefix = sys.stdin.buffer.read1(6)
"""

from __future__ import annotations

import os
import threading
from contextlib import contextmanager
from typing import Callable, Iterator

from recompress.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_STALL_TIMEOUT = 5.0
EXIT_STALLED = 124


def terminate_process(timeout: float) -> None:
    """Report the stall and exit immediately, skipping all cleanup."""
    try:
        logger.critical(f"No input received within {timeout:g}s, aborting")
    finally:
        os._exit(EXIT_STALLED)


class StallWatchdog:
    """Single-shot timer racing the initial blocking read.

    Args:
        timeout: Seconds to wait for the first input bytes.
        on_stall: Action run on the timer thread when the deadline passes
            without input. Defaults to ``terminate_process``.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_STALL_TIMEOUT,
        *,
        on_stall: Callable[[float], None] | None = None,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.timeout = timeout
        self._on_stall = on_stall or terminate_process
        self._received = threading.Event()
        self._timer: threading.Timer | None = None
        self._fired = False

    @property
    def armed(self) -> bool:
        return self._timer is not None and not self._received.is_set() and not self._fired

    @property
    def received(self) -> bool:
        """Whether the main path has signalled that input arrived."""
        return self._received.is_set()

    @property
    def fired(self) -> bool:
        return self._fired

    def arm(self) -> None:
        """Start the timer. A watchdog can be armed only once."""
        if self._timer is not None:
            raise RuntimeError("Watchdog is already armed")
        self._timer = threading.Timer(self.timeout, self._fire)
        self._timer.daemon = True
        self._timer.name = "recompress-stall-watchdog"
        self._timer.start()
        logger.debug("Stall watchdog armed", timeout=self.timeout)

    def notify(self) -> None:
        """Signal that the initial read returned and disarm the timer."""
        self._received.set()
        if self._timer is not None:
            self._timer.cancel()

    def _fire(self) -> None:
        if self._received.is_set():
            return
        self._fired = True
        self._on_stall(self.timeout)

    def join(self, timeout: float | None = None) -> None:
        """Wait for the timer thread to finish."""
        if self._timer is not None:
            self._timer.join(timeout)

    @contextmanager
    def guard(self) -> Iterator["StallWatchdog"]:
        """Arm on entry, notify on exit, whether the read succeeded or not."""
        self.arm()
        try:
            yield self
        finally:
            self.notify()
