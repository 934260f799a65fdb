# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/assisted/install/interface.py
from __future__ import annotations

from typing import Optional, Protocol

from .status import ClusterSnapshot


class StatusSource(Protocol):
    """
    Contract for the remote service that owns cluster state.

    Implementations must honour *timeout* (seconds left on the caller's
    deadline). Cancellation cannot abort a call that is already running, so
    *timeout* is the upper bound on how long a cancel waits for it; the
    requests-based client additionally caps it at its own request timeout
    (30s by default).

    Failures are raised as StatusSourceError; set ``transient`` for errors
    worth polling through (network, 5xx).
    """

    def fetch_status(self, cluster_id: str, *, timeout: Optional[float] = None) -> ClusterSnapshot:
        ...

    def trigger_install(self, cluster_id: str, *, timeout: Optional[float] = None) -> None:
        ...
