# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/assisted/install/readiness.py
from __future__ import annotations

import logging
from typing import Callable, Optional

from .deadline import Deadline
from .interface import StatusSource
from .models import Phase
from .poller import wait_for_status
from .status import ClusterSnapshot, ClusterStatus

log = logging.getLogger("assisted")

# ceiling on the readiness share of the budget, so slow host discovery
# still leaves time for the installation itself
READINESS_CEILING = 10 * 60.0

READY_STATUSES = frozenset({ClusterStatus.READY})
READINESS_FAILURES = frozenset({ClusterStatus.ERROR})


def readiness_budget(total: float) -> float:
    """Half of the overall timeout, capped at READINESS_CEILING."""
    return min(total / 2.0, READINESS_CEILING)


def has_enough_hosts(expected_host_count: int) -> Callable[[ClusterSnapshot], bool]:
    def _check(snap: ClusterSnapshot) -> bool:
        if snap.host_count >= expected_host_count:
            return True
        log.debug(
            f"[readiness] cluster {snap.cluster_id} is ready but has "
            f"{snap.host_count}/{expected_host_count} hosts; waiting"
        )
        return False

    return _check


def wait_until_ready(
    source: StatusSource,
    cluster_id: str,
    expected_host_count: int,
    deadline: Deadline,
    *,
    on_snapshot: Optional[Callable[[ClusterSnapshot], None]] = None,
) -> ClusterSnapshot:
    """
    Block until the cluster is ``ready`` AND reports at least
    *expected_host_count* hosts.

    ``error`` fails immediately with the service's status_info. The wait gets
    readiness_budget() of the overall deadline; whatever it does not use is
    left for the completion phase.
    """
    with deadline.child(readiness_budget(deadline.timeout)) as gate:
        log.info(
            f"Waiting for cluster {cluster_id} to be ready for installation "
            f"(expected_hosts={expected_host_count}, budget={gate.timeout:.0f}s)"
        )
        snap = wait_for_status(
            source,
            cluster_id,
            READY_STATUSES,
            READINESS_FAILURES,
            gate,
            accept=has_enough_hosts(expected_host_count),
            on_snapshot=on_snapshot,
            phase=Phase.READINESS.value,
        )

    log.info(f"Cluster {cluster_id} is ready for installation (host_count={snap.host_count})")
    return snap
