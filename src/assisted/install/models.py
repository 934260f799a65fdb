# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/assisted/install/models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from ..errors import InstallationError, WaitTimeoutError

DEFAULT_CREATE_TIMEOUT = timedelta(minutes=90)
UNKNOWN_STATUS = "unknown"
# cluster ids double as state file names
CLUSTER_ID_PATTERN = r"^[A-Za-z0-9._-]+$"


class Phase(str, Enum):
    STATUS_CHECK = "status-check"
    READINESS = "readiness"
    TRIGGER = "trigger"
    COMPLETION = "completion"
    DONE = "done"


def utc_now() -> str:
    """RFC 3339 timestamp, second precision."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class ReconciliationRequest(BaseModel):
    """Input of one reconciliation attempt. Never reused."""

    cluster_id: str = Field(min_length=1, pattern=CLUSTER_ID_PATTERN)
    expected_host_count: int = Field(default=3, ge=1)
    wait_for_hosts: bool = True
    timeout: timedelta = DEFAULT_CREATE_TIMEOUT

    model_config = {
        "frozen": True,
        "extra": "forbid",
    }

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, v: timedelta) -> timedelta:
        if v.total_seconds() <= 0:
            raise ValueError("timeout must be positive")
        return v

    @property
    def timeout_seconds(self) -> float:
        return self.timeout.total_seconds()


@dataclass
class ReconciliationOutcome:
    """
    Result of one attempt. Always populated, also on failure: the persisted
    record is the only trace an operator has of what the remote cluster did.
    """

    cluster_id: str
    status: str = UNKNOWN_STATUS
    status_info: str = ""
    host_count: int = 0
    phase: Phase = Phase.STATUS_CHECK
    error: Optional[InstallationError] = None
    triggered: bool = False
    install_started_at: Optional[str] = None
    install_completed_at: Optional[str] = None
    persist_error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.phase is Phase.DONE

    @property
    def timed_out(self) -> bool:
        return isinstance(self.error, WaitTimeoutError)

    def observe(self, status: Optional[str], status_info: Optional[str], host_count: Optional[int] = None) -> None:
        if status:
            self.status = status
            self.status_info = status_info or ""
            if host_count is not None:
                self.host_count = host_count

    def summary(self) -> str:
        state = "OK" if self.succeeded else "FAILED"
        line = f"{state} cluster={self.cluster_id} status={self.status} phase={self.phase.value}"
        if self.status_info:
            line += f" info={self.status_info!r}"
        if self.error is not None:
            line += f" error={self.error}"
        if self.persist_error:
            line += f" state_not_saved={self.persist_error!r}"
        return line

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cluster_id": self.cluster_id,
            "status": self.status,
            "status_info": self.status_info,
            "host_count": self.host_count,
            "phase": self.phase.value,
            "error": str(self.error) if self.error else None,
            "error_type": type(self.error).__name__ if self.error else None,
            "triggered": self.triggered,
            "install_started_at": self.install_started_at,
            "install_completed_at": self.install_completed_at,
            "persist_error": self.persist_error,
        }
