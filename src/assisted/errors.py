# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/assisted/errors.py
from __future__ import annotations

from typing import Optional


class AssistedError(RuntimeError):
    """Base class for every failure raised by this package."""


# ---------------------------------------------------------------------
# Status Source (transport) failures
# ---------------------------------------------------------------------
class StatusSourceError(AssistedError):
    """Raised when the Assisted Service cannot be queried or driven."""

    def __init__(self, message: str, *, transient: bool = False):
        super().__init__(message)
        self.transient = transient


class StatusFetchError(StatusSourceError):
    """Fetching the current cluster status failed."""


class ApiError(StatusSourceError):
    """The API answered with an HTTP error status."""

    def __init__(self, status_code: int, body: str, *, endpoint: str = ""):
        transient = status_code >= 500 or status_code == 429
        target = f"API request {endpoint}" if endpoint else "API request"
        super().__init__(
            f"{target} failed with status {status_code}: {body}",
            transient=transient,
        )
        self.status_code = status_code
        self.body = body
        self.endpoint = endpoint


class AuthenticationError(StatusSourceError):
    """Exchanging the offline token for an access token failed."""


# ---------------------------------------------------------------------
# Reconciliation failures
# ---------------------------------------------------------------------
class InstallationError(AssistedError):
    """
    A reconciliation attempt failed.

    Always carries the phase that failed plus the last status the remote
    service reported, since that is the operator's only view of a cluster
    this tool does not control.
    """

    def __init__(
        self,
        reason: str,
        *,
        phase: str,
        cluster_id: str,
        status: Optional[str] = None,
        status_info: Optional[str] = None,
    ):
        self.reason = reason
        self.phase = phase
        self.cluster_id = cluster_id
        self.status = status
        self.status_info = status_info
        super().__init__(self._format())

    def _format(self) -> str:
        return (
            f"[{self.phase}] cluster {self.cluster_id}: {self.reason} "
            f"(last status: {self.status or 'unknown'}, "
            f"status info: {self.status_info or '-'})"
        )

    def with_last_known(self, status: Optional[str], status_info: Optional[str]) -> "InstallationError":
        """Refresh the last known remote status after a final fetch."""
        if status:
            self.status = status
            self.status_info = status_info
            self.args = (self._format(),)
        return self


class RemoteFailureError(InstallationError):
    """The service reported a failure status (error / cancelled)."""


class WaitTimeoutError(InstallationError):
    """The deadline elapsed (or the wait was cancelled) before resolution."""


class TriggerError(InstallationError):
    """The install-trigger call failed. Never retried."""
