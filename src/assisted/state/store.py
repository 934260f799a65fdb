# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/assisted/state/store.py
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Optional

from pydantic import BaseModel

from ..install.interface import StatusSource
from ..install.models import CLUSTER_ID_PATTERN, ReconciliationOutcome, ReconciliationRequest

log = logging.getLogger("assisted")

_SAFE_ID = re.compile(CLUSTER_ID_PATTERN)


class InstallationRecord(BaseModel):
    """Persisted view of one cluster installation (one file per cluster)."""

    id: str
    cluster_id: str
    wait_for_hosts: bool = True
    expected_host_count: int = 3
    status: str
    status_info: str = ""
    host_count: int = 0
    phase: Optional[str] = None
    error: Optional[str] = None
    install_started_at: Optional[str] = None
    install_completed_at: Optional[str] = None


class StateStore:
    """
    JSON records under *base_dir*, written atomically (temp file + rename)
    so an interrupted run never leaves a half-written record behind.
    """

    def __init__(self, base_dir: Optional[Path] = None):
        self.base_dir = Path(base_dir) if base_dir else Path.home() / ".assisted" / "state"

    def path_for(self, cluster_id: str) -> Path:
        if not _SAFE_ID.match(cluster_id):
            raise ValueError(f"Refusing to build a state path from cluster id {cluster_id!r}")
        return self.base_dir / f"{cluster_id}.json"

    def load(self, cluster_id: str) -> Optional[InstallationRecord]:
        path = self.path_for(cluster_id)
        if not path.is_file():
            return None
        return InstallationRecord.model_validate_json(path.read_text(encoding="utf-8"))

    def write(self, record: InstallationRecord) -> Path:
        path = self.path_for(record.cluster_id)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(".tmp")
        try:
            tmp.write_text(json.dumps(record.model_dump(), indent=2) + "\n", encoding="utf-8")
            tmp.replace(path)
        finally:
            tmp.unlink(missing_ok=True)
        log.debug(f"State for cluster {record.cluster_id} written to {path}")
        return path

    def save(self, request: ReconciliationRequest, outcome: ReconciliationOutcome) -> Path:
        """Record the outcome of an attempt, keeping timestamps from earlier runs."""
        previous = self.load(request.cluster_id)
        record = InstallationRecord(
            id=request.cluster_id,
            cluster_id=request.cluster_id,
            wait_for_hosts=request.wait_for_hosts,
            expected_host_count=request.expected_host_count,
            status=outcome.status,
            status_info=outcome.status_info,
            host_count=outcome.host_count,
            phase=outcome.phase.value,
            error=str(outcome.error) if outcome.error else None,
            install_started_at=outcome.install_started_at
            or (previous.install_started_at if previous else None),
            install_completed_at=outcome.install_completed_at
            or (previous.install_completed_at if previous else None),
        )
        return self.write(record)

    def refresh(self, source: StatusSource, cluster_id: str) -> InstallationRecord:
        """
        Re-read the cluster and update status fields only. Creates a minimal
        record when none exists yet.
        """
        snap = source.fetch_status(cluster_id)
        record = self.load(cluster_id) or InstallationRecord(
            id=cluster_id,
            cluster_id=cluster_id,
            status=snap.status,
        )
        record = record.model_copy(
            update={
                "status": snap.status,
                "status_info": snap.status_info,
                "host_count": snap.host_count,
            }
        )
        self.write(record)
        return record
