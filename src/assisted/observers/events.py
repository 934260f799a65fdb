# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/assisted/observers/events.py

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import List, Dict, Any, Optional
from datetime import datetime, timezone
import uuid


# ---------------------------------------------------------------------
# Base context and helper
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class BaseEvent:
    ts: str           # ISO timestamp
    run_id: str       # correlates all events in a single reconciliation
    env: str          # service endpoint label (e.g. "saas", "onprem")
    context: Optional[str]  # cluster id the run is about

    def dict(self) -> Dict[str, Any]:
        return asdict(self)


def new_ctx(env: str, context: Optional[str], run_id: Optional[str] = None) -> Dict[str, Any]:
    return {
        "ts": datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z"),
        "run_id": run_id or str(uuid.uuid4()),
        "env": env,
        "context": context,
    }


# ---------------------------------------------------------------------
# Installation lifecycle
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class InstallationStarted(BaseEvent):
    cluster_id: str
    expected_host_count: int
    wait_for_hosts: bool
    timeout_s: int

@dataclass(frozen=True)
class InstallationResumed(BaseEvent):
    cluster_id: str
    status: str       # "installing" | "finalizing"

@dataclass(frozen=True)
class ClusterStatusUpdate(BaseEvent):
    cluster_id: str
    phase: str
    status: str
    status_info: str
    host_count: int

@dataclass(frozen=True)
class ClusterReady(BaseEvent):
    cluster_id: str
    host_count: int

@dataclass(frozen=True)
class InstallationTriggered(BaseEvent):
    cluster_id: str
    started_at: str

@dataclass(frozen=True)
class InstallationSucceeded(BaseEvent):
    cluster_id: str
    completed_at: str
    duration_ms: int

@dataclass(frozen=True)
class InstallationFailed(BaseEvent):
    cluster_id: str
    phase: str
    status: str
    error: str

@dataclass(frozen=True)
class InstallationTimedOut(BaseEvent):
    cluster_id: str
    phase: str
    status: str
    timeout_s: int


# ---------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class InstallationSummary(BaseEvent):
    cluster_id: str
    status: str          # "OK" or "FAILED"
    cluster_status: str
    phase: str
    error: Optional[str] = None


@dataclass(frozen=True)
class StatusWaitFinished(BaseEvent):
    cluster_id: str
    targets: List[str]
    status: str
    ok: bool
    error: Optional[str] = None
