# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/assisted/install/status.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional, Union

log = logging.getLogger("assisted")


class ClusterStatus(str, Enum):
    """Cluster status values reported by the Assisted Service."""

    INSUFFICIENT = "insufficient"
    PENDING_FOR_INPUT = "pending-for-input"
    READY = "ready"
    PREPARING_FOR_INSTALLATION = "preparing-for-installation"
    INSTALLING = "installing"
    INSTALLING_PENDING_USER_ACTION = "installing-pending-user-action"
    FINALIZING = "finalizing"
    INSTALLED = "installed"
    ADDING_HOSTS = "adding-hosts"
    ERROR = "error"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: Union[str, "ClusterStatus", None]) -> Optional["ClusterStatus"]:
        """Return the matching member, or None for values this build does not know."""
        if value is None:
            return None
        if isinstance(value, ClusterStatus):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class StatusRole(str, Enum):
    WAIT = "wait"
    SUCCESS_TERMINAL = "success-terminal"
    FAILURE_TERMINAL = "failure-terminal"


_ROLES = {
    ClusterStatus.INSUFFICIENT: StatusRole.WAIT,
    ClusterStatus.PENDING_FOR_INPUT: StatusRole.WAIT,
    ClusterStatus.READY: StatusRole.WAIT,
    ClusterStatus.PREPARING_FOR_INSTALLATION: StatusRole.WAIT,
    ClusterStatus.INSTALLING: StatusRole.WAIT,
    ClusterStatus.INSTALLING_PENDING_USER_ACTION: StatusRole.WAIT,
    ClusterStatus.FINALIZING: StatusRole.WAIT,
    ClusterStatus.INSTALLED: StatusRole.SUCCESS_TERMINAL,
    ClusterStatus.ADDING_HOSTS: StatusRole.WAIT,
    ClusterStatus.ERROR: StatusRole.FAILURE_TERMINAL,
    ClusterStatus.CANCELLED: StatusRole.FAILURE_TERMINAL,
}


def role(status: Union[str, ClusterStatus, None]) -> StatusRole:
    """
    Classify a status into WAIT / SUCCESS_TERMINAL / FAILURE_TERMINAL.

    Unknown values fail closed into WAIT so a status introduced by a newer
    service release keeps the loop polling instead of matching a wrong branch.
    """
    member = ClusterStatus.parse(status)
    if member is None:
        log.warning(f"Unrecognised cluster status {status!r}; treating as in-progress")
        return StatusRole.WAIT
    return _ROLES[member]


def statuses_with_role(wanted: StatusRole) -> FrozenSet[ClusterStatus]:
    return frozenset(s for s, r in _ROLES.items() if r is wanted)


SUCCESS_STATUSES = statuses_with_role(StatusRole.SUCCESS_TERMINAL)
FAILURE_STATUSES = statuses_with_role(StatusRole.FAILURE_TERMINAL)

# statuses that mean a previous run already started the installation
IN_PROGRESS_STATUSES = frozenset({ClusterStatus.INSTALLING, ClusterStatus.FINALIZING})


def normalize(statuses: Iterable[Union[str, ClusterStatus]]) -> FrozenSet[str]:
    """Turn a mix of enum members and raw strings into a set of raw values."""
    out = set()
    for s in statuses:
        out.add(s.value if isinstance(s, ClusterStatus) else str(s).strip().lower())
    return frozenset(out)


@dataclass(frozen=True)
class ClusterSnapshot:
    """One status fetch. Never cached: every poll produces a new snapshot."""

    cluster_id: str
    status: str
    status_info: str = ""
    host_count: int = 0

    @property
    def known_status(self) -> Optional[ClusterStatus]:
        return ClusterStatus.parse(self.status)

    @property
    def role(self) -> StatusRole:
        return role(self.status)

    def in_status(self, *statuses: Union[str, ClusterStatus]) -> bool:
        return self.status in normalize(statuses)
