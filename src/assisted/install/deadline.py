# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/assisted/install/deadline.py
from __future__ import annotations

import threading
import time
from typing import Callable, Optional


class Deadline:
    """
    Monotonic expiry plus a cancellation signal.

    One Deadline is created per reconciliation attempt; each wait phase takes
    a child() that never outlives its parent and shares the parent's cancel
    signal, so cancel() on any of them stops the whole attempt.
    """

    def __init__(
        self,
        timeout: float,
        *,
        cancel_event: Optional[threading.Event] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if timeout < 0:
            raise ValueError(f"timeout must be >= 0, got {timeout}")
        self.timeout = float(timeout)
        self._clock = clock
        self._event = cancel_event if cancel_event is not None else threading.Event()
        self.started_at = clock()
        self.expires_at = self.started_at + self.timeout
        self._closed = False

    # -----------------------------------------------------------------
    # State
    # -----------------------------------------------------------------
    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def remaining(self) -> float:
        if self._closed or self.cancelled:
            return 0.0
        return max(0.0, self.expires_at - self._clock())

    def elapsed(self) -> float:
        return self._clock() - self.started_at

    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def cancel(self) -> None:
        self._event.set()

    # -----------------------------------------------------------------
    # Derivation / waiting
    # -----------------------------------------------------------------
    def child(self, timeout: float) -> "Deadline":
        """A sub-deadline capped by what is left on this one."""
        return Deadline(
            min(max(timeout, 0.0), self.remaining()),
            cancel_event=self._event,
            clock=self._clock,
        )

    def sleep(self, seconds: float) -> bool:
        """
        Sleep up to *seconds*, never past the deadline.
        Returns False when the deadline is gone (elapsed or cancelled).
        """
        wait_for = min(max(seconds, 0.0), self.remaining())
        if wait_for > 0:
            self._event.wait(wait_for)
        return not self.expired()

    def close(self) -> None:
        self._closed = True

    def __enter__(self) -> "Deadline":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Deadline(timeout={self.timeout:.3f}s, remaining={self.remaining():.3f}s, cancelled={self.cancelled})"
