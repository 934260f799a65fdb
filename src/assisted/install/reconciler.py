# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/assisted/install/reconciler.py
from __future__ import annotations

import logging
import threading
import time
from datetime import timedelta
from typing import Any, Callable, Iterable, List, Optional, Union

from ..errors import (
    InstallationError,
    StatusSourceError,
    WaitTimeoutError,
)
from ..observers.dispatcher import EventBus
from ..observers.events import (
    new_ctx,
    ClusterReady,
    ClusterStatusUpdate,
    InstallationFailed,
    InstallationResumed,
    InstallationStarted,
    InstallationSucceeded,
    InstallationSummary,
    InstallationTimedOut,
    InstallationTriggered,
    StatusWaitFinished,
)
from .completion import wait_until_installed
from .deadline import Deadline
from .interface import StatusSource
from .models import Phase, ReconciliationOutcome, ReconciliationRequest, utc_now
from .poller import wait_for_status
from .readiness import wait_until_ready
from .status import (
    FAILURE_STATUSES,
    IN_PROGRESS_STATUSES,
    ClusterSnapshot,
    ClusterStatus,
)
from .trigger import trigger_installation

log = logging.getLogger("assisted")

# budget for the last-known-status fetch made after a failure; independent of
# the (possibly exhausted) attempt deadline
FINAL_FETCH_TIMEOUT = 10.0


class InstallationReconciler:
    """
    Drives one Assisted Installer cluster from "hosts discovered" to
    ``installed`` and records what happened.

    reconcile() never raises: every failure, expected or not, ends in a
    populated ReconciliationOutcome (persisted when a state store is
    configured; a failed write is logged and kept on the outcome). Only one attempt per cluster id may run at a time; that is
    up to the caller.
    """

    def __init__(
        self,
        source: StatusSource,
        *,
        observers: Optional[List] = None,
        state_store: Any = None,
        env: str = "saas",
        run_id: Optional[str] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.state_store = state_store
        self.env = env
        self.run_id = run_id
        self._clock = clock
        self.bus = EventBus(observers or [])
        # deadlines of the calls currently running, for cancel()
        self._active: List[Deadline] = []

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def cancel(self) -> None:
        """
        Interrupt every running reconcile() / wait_for_status() call; they
        finish with a WaitTimeoutError. A request already on the wire is not
        aborted, it returns within its own timeout.
        """
        for deadline in list(self._active):
            deadline.cancel()

    def reconcile(
        self,
        request: ReconciliationRequest,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> ReconciliationOutcome:
        cluster_id = request.cluster_id
        run_ctx = new_ctx(env=self.env, context=cluster_id, run_id=self.run_id)
        outcome = ReconciliationOutcome(cluster_id=cluster_id)
        t0 = time.time()

        self.bus.emit(
            InstallationStarted(
                cluster_id=cluster_id,
                expected_host_count=request.expected_host_count,
                wait_for_hosts=request.wait_for_hosts,
                timeout_s=int(request.timeout_seconds),
                **run_ctx,
            )
        )
        log.info(f"Starting installation of cluster {cluster_id} (timeout={request.timeout})")

        deadline = Deadline(request.timeout_seconds, cancel_event=cancel_event, clock=self._clock)
        self._active.append(deadline)
        try:
            self._run(request, deadline, outcome, run_ctx)
            outcome.phase = Phase.DONE
            if outcome.install_completed_at is None:
                outcome.install_completed_at = utc_now()
            self.bus.emit(
                InstallationSucceeded(
                    cluster_id=cluster_id,
                    completed_at=outcome.install_completed_at,
                    duration_ms=int((time.time() - t0) * 1000),
                    **run_ctx,
                )
            )
            log.info(f"Cluster {cluster_id} installation completed successfully")

        except InstallationError as exc:
            self._fail(exc, request, outcome, run_ctx)

        except Exception as exc:
            log.debug(f"Unexpected error while installing cluster {cluster_id}", exc_info=True)
            wrapped = InstallationError(
                f"unexpected error: {type(exc).__name__}: {exc}",
                phase=outcome.phase.value,
                cluster_id=cluster_id,
            )
            wrapped.__cause__ = exc
            self._fail(wrapped, request, outcome, run_ctx)

        finally:
            deadline.close()
            self._active.remove(deadline)

        self.bus.emit(
            InstallationSummary(
                cluster_id=cluster_id,
                status="OK" if outcome.succeeded else "FAILED",
                cluster_status=outcome.status,
                phase=outcome.phase.value,
                error=str(outcome.error) if outcome.error else None,
                **run_ctx,
            )
        )

        if self.state_store is not None:
            try:
                self.state_store.save(request, outcome)
            except Exception as exc:
                log.error(f"Could not record state of cluster {cluster_id}: {exc}")
                outcome.persist_error = str(exc)

        return outcome

    def _fail(
        self,
        exc: InstallationError,
        request: ReconciliationRequest,
        outcome: ReconciliationOutcome,
        run_ctx: dict,
    ) -> None:
        cluster_id = request.cluster_id
        outcome.phase = Phase(exc.phase)
        outcome.error = exc
        self._record_last_known(outcome)
        exc.with_last_known(outcome.status, outcome.status_info)

        if isinstance(exc, WaitTimeoutError):
            self.bus.emit(
                InstallationTimedOut(
                    cluster_id=cluster_id,
                    phase=exc.phase,
                    status=outcome.status,
                    timeout_s=int(request.timeout_seconds),
                    **run_ctx,
                )
            )
        else:
            self.bus.emit(
                InstallationFailed(
                    cluster_id=cluster_id,
                    phase=exc.phase,
                    status=outcome.status,
                    error=str(exc),
                    **run_ctx,
                )
            )
        log.error(f"Cluster {cluster_id} installation did not complete: {exc}")

    def wait_for_status(
        self,
        cluster_id: str,
        targets: Iterable[Union[str, ClusterStatus]],
        failures: Iterable[Union[str, ClusterStatus]] = FAILURE_STATUSES,
        timeout: Union[float, timedelta] = 600.0,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> ClusterSnapshot:
        """
        Block until *cluster_id* reaches one of *targets*, without triggering
        anything. Raises RemoteFailureError / WaitTimeoutError.
        """
        seconds = timeout.total_seconds() if isinstance(timeout, timedelta) else float(timeout)
        targets = list(targets)
        run_ctx = new_ctx(env=self.env, context=cluster_id, run_id=self.run_id)
        target_names = sorted(t.value if isinstance(t, ClusterStatus) else str(t) for t in targets)

        with Deadline(seconds, cancel_event=cancel_event, clock=self._clock) as deadline:
            self._active.append(deadline)
            try:
                snap = wait_for_status(
                    self.source,
                    cluster_id,
                    targets,
                    failures,
                    deadline,
                    phase="wait",
                )
            except InstallationError as exc:
                self.bus.emit(
                    StatusWaitFinished(
                        cluster_id=cluster_id,
                        targets=target_names,
                        status=exc.status or "unknown",
                        ok=False,
                        error=str(exc),
                        **run_ctx,
                    )
                )
                raise
            finally:
                self._active.remove(deadline)

        self.bus.emit(
            StatusWaitFinished(
                cluster_id=cluster_id,
                targets=target_names,
                status=snap.status,
                ok=True,
                **run_ctx,
            )
        )
        return snap

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _observer(self, outcome: ReconciliationOutcome, run_ctx: dict) -> Callable[[ClusterSnapshot], None]:
        def _on_snapshot(snap: ClusterSnapshot) -> None:
            outcome.observe(snap.status, snap.status_info, snap.host_count)
            self.bus.emit(
                ClusterStatusUpdate(
                    cluster_id=snap.cluster_id,
                    phase=outcome.phase.value,
                    status=snap.status,
                    status_info=snap.status_info,
                    host_count=snap.host_count,
                    **run_ctx,
                )
            )

        return _on_snapshot

    def _run(
        self,
        request: ReconciliationRequest,
        deadline: Deadline,
        outcome: ReconciliationOutcome,
        run_ctx: dict,
    ) -> None:
        cluster_id = request.cluster_id
        on_snapshot = self._observer(outcome, run_ctx)

        # -------------------------------------------------------------
        # Idempotency check: one fetch decides where to start
        # -------------------------------------------------------------
        outcome.phase = Phase.STATUS_CHECK
        try:
            current = self.source.fetch_status(cluster_id, timeout=deadline.remaining())
        except (StatusSourceError, ConnectionError, TimeoutError) as exc:
            raise InstallationError(
                f"could not get cluster: {exc}",
                phase=Phase.STATUS_CHECK.value,
                cluster_id=cluster_id,
            ) from exc
        on_snapshot(current)

        if current.in_status(ClusterStatus.INSTALLED):
            log.info(f"Cluster {cluster_id} already installed")
            outcome.install_completed_at = utc_now()
            return

        if current.in_status(*IN_PROGRESS_STATUSES):
            log.info(f"Cluster {cluster_id} installation already in progress (status={current.status})")
            self.bus.emit(InstallationResumed(cluster_id=cluster_id, status=current.status, **run_ctx))
        else:
            # ---------------------------------------------------------
            # Readiness gate
            # ---------------------------------------------------------
            if request.wait_for_hosts:
                already_ready = (
                    current.in_status(ClusterStatus.READY)
                    and current.host_count >= request.expected_host_count
                )
                if not already_ready:
                    outcome.phase = Phase.READINESS
                    current = wait_until_ready(
                        self.source,
                        cluster_id,
                        request.expected_host_count,
                        deadline,
                        on_snapshot=on_snapshot,
                    )
                self.bus.emit(ClusterReady(cluster_id=cluster_id, host_count=current.host_count, **run_ctx))

            # ---------------------------------------------------------
            # Trigger (exactly once)
            # ---------------------------------------------------------
            outcome.phase = Phase.TRIGGER
            outcome.install_started_at = utc_now()
            trigger_installation(self.source, cluster_id, deadline)
            outcome.triggered = True
            self.bus.emit(
                InstallationTriggered(
                    cluster_id=cluster_id,
                    started_at=outcome.install_started_at,
                    **run_ctx,
                )
            )

        # -------------------------------------------------------------
        # Completion
        # -------------------------------------------------------------
        outcome.phase = Phase.COMPLETION
        wait_until_installed(self.source, cluster_id, deadline, on_snapshot=on_snapshot)

    def _record_last_known(self, outcome: ReconciliationOutcome) -> None:
        """One last fetch so the persisted status reflects the service, not our guess."""
        try:
            snap = self.source.fetch_status(outcome.cluster_id, timeout=FINAL_FETCH_TIMEOUT)
        except Exception as exc:
            log.warning(
                f"Could not refresh status of cluster {outcome.cluster_id} after failure "
                f"(keeping last known status {outcome.status!r}): {exc}"
            )
            return
        outcome.observe(snap.status, snap.status_info, snap.host_count)
