# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/assisted/install/completion.py
from __future__ import annotations

import logging
from typing import Callable, Optional

from .deadline import Deadline
from .interface import StatusSource
from .models import Phase
from .poller import wait_for_status
from .status import FAILURE_STATUSES, ClusterSnapshot, ClusterStatus, StatusRole

log = logging.getLogger("assisted")

INSTALLED_STATUSES = frozenset({ClusterStatus.INSTALLED})

# values expected while an installation is running
_IN_FLIGHT = frozenset(
    {
        ClusterStatus.PREPARING_FOR_INSTALLATION.value,
        ClusterStatus.INSTALLING.value,
        ClusterStatus.INSTALLING_PENDING_USER_ACTION.value,
        ClusterStatus.FINALIZING.value,
    }
)


def wait_until_installed(
    source: StatusSource,
    cluster_id: str,
    deadline: Deadline,
    *,
    on_snapshot: Optional[Callable[[ClusterSnapshot], None]] = None,
) -> ClusterSnapshot:
    """
    Wait for ``installed``; ``error`` and ``cancelled`` are fatal.

    Gets everything left on *deadline*: installation is the long phase.
    """

    def _observe(snap: ClusterSnapshot) -> None:
        if snap.role is StatusRole.WAIT and snap.status not in _IN_FLIGHT:
            log.warning(
                f"[completion] Unexpected status {snap.status!r} for cluster {cluster_id} "
                f"during installation; still waiting"
            )
        if on_snapshot is not None:
            on_snapshot(snap)

    with deadline.child(deadline.remaining()) as watch:
        log.info(f"Waiting for installation of cluster {cluster_id} to complete (budget={watch.timeout:.0f}s)")
        snap = wait_for_status(
            source,
            cluster_id,
            INSTALLED_STATUSES,
            FAILURE_STATUSES,
            watch,
            on_snapshot=_observe,
            phase=Phase.COMPLETION.value,
        )

    log.info(f"Cluster {cluster_id} installation completed")
    return snap
