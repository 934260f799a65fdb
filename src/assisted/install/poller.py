# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/assisted/install/poller.py
from __future__ import annotations

import logging
from typing import Callable, Iterable, Optional, Union

from ..errors import (
    InstallationError,
    RemoteFailureError,
    StatusSourceError,
    WaitTimeoutError,
)
from .deadline import Deadline
from .interface import StatusSource
from .status import ClusterSnapshot, ClusterStatus, normalize

log = logging.getLogger("assisted")

STEADY_POLL_INTERVAL = 30.0

StatusSet = Iterable[Union[str, ClusterStatus]]


def poll_interval_for(budget: float) -> float:
    """
    30s in steady state; short budgets (tests, quick re-checks) poll faster
    so a sub-minute wait is not a single sleep.
    """
    if budget < 10:
        return 0.01
    if budget < 60:
        return 0.1
    return STEADY_POLL_INTERVAL


def wait_for_status(
    source: StatusSource,
    cluster_id: str,
    targets: StatusSet,
    failures: StatusSet,
    deadline: Deadline,
    *,
    accept: Optional[Callable[[ClusterSnapshot], bool]] = None,
    on_snapshot: Optional[Callable[[ClusterSnapshot], None]] = None,
    phase: str = "wait",
    interval: Optional[float] = None,
) -> ClusterSnapshot:
    """
    Poll *source* until the cluster reaches one of *targets*.

    - one fetch happens immediately, before the first sleep
    - a status in *failures* raises RemoteFailureError right away
    - transient fetch errors are logged and polling continues
    - *accept* is an extra check on a target status; when it returns False
      the wait goes on (e.g. ``ready`` but not enough hosts yet)
    - deadline elapsed or cancelled raises WaitTimeoutError

    Returns the snapshot that satisfied the wait.
    """
    wanted = normalize(targets)
    fatal = normalize(failures)
    interval = interval if interval is not None else poll_interval_for(deadline.timeout)
    last: Optional[ClusterSnapshot] = None
    attempts = 0

    def _fetch() -> Optional[ClusterSnapshot]:
        nonlocal last, attempts
        attempts += 1
        try:
            snap = source.fetch_status(cluster_id, timeout=deadline.remaining())
        except StatusSourceError as exc:
            if not exc.transient:
                raise InstallationError(
                    f"failed to get cluster status: {exc}",
                    phase=phase,
                    cluster_id=cluster_id,
                    status=last.status if last else None,
                    status_info=last.status_info if last else None,
                ) from exc
            log.warning(f"[{phase}] Failed to get status of cluster {cluster_id} (attempt {attempts}): {exc}")
            return None
        except (ConnectionError, TimeoutError) as exc:
            log.warning(f"[{phase}] Failed to get status of cluster {cluster_id} (attempt {attempts}): {exc}")
            return None

        last = snap
        log.debug(
            f"[{phase}] cluster={cluster_id} status={snap.status} hosts={snap.host_count} "
            f"targets={sorted(wanted)} status_info={snap.status_info!r}"
        )
        if on_snapshot is not None:
            on_snapshot(snap)
        return snap

    def _resolved(snap: Optional[ClusterSnapshot]) -> bool:
        if snap is None:
            return False
        if snap.status in wanted:
            if accept is None or accept(snap):
                return True
            return False
        if snap.status in fatal:
            raise RemoteFailureError(
                f"cluster reached error state: {snap.status} - {snap.status_info}",
                phase=phase,
                cluster_id=cluster_id,
                status=snap.status,
                status_info=snap.status_info,
            )
        return False

    snap = _fetch()
    if _resolved(snap):
        return snap

    while deadline.sleep(interval):
        snap = _fetch()
        if _resolved(snap):
            return snap

    why = "cancelled" if deadline.cancelled else f"timeout after {deadline.timeout:.1f}s"
    raise WaitTimeoutError(
        f"{why} waiting for cluster to reach states {sorted(wanted)}",
        phase=phase,
        cluster_id=cluster_id,
        status=last.status if last else None,
        status_info=last.status_info if last else None,
    )
