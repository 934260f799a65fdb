# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/assisted/install/trigger.py
from __future__ import annotations

import logging

from ..errors import TriggerError
from .deadline import Deadline
from .interface import StatusSource
from .models import Phase

log = logging.getLogger("assisted")


def trigger_installation(source: StatusSource, cluster_id: str, deadline: Deadline) -> None:
    """
    Ask the service to start installing the cluster. Called once per attempt.

    Any failure is final: the service may already have accepted the request,
    and a second call cannot be assumed to be deduplicated.
    """
    if deadline.expired():
        raise TriggerError(
            "deadline exhausted before installation could be triggered",
            phase=Phase.TRIGGER.value,
            cluster_id=cluster_id,
        )

    log.info(f"Triggering installation of cluster {cluster_id}")
    try:
        source.trigger_install(cluster_id, timeout=deadline.remaining())
    except Exception as exc:
        raise TriggerError(
            f"could not trigger installation: {exc}",
            phase=Phase.TRIGGER.value,
            cluster_id=cluster_id,
        ) from exc
