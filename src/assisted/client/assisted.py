# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/assisted/client/assisted.py

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

import requests

from ..errors import ApiError, AuthenticationError, StatusFetchError, StatusSourceError
from ..install.status import ClusterSnapshot

log = logging.getLogger("assisted")

DEFAULT_BASE_URL = "https://api.openshift.com/api/assisted-install"
API_VERSION = "v2"
TOKEN_ENDPOINT = "https://sso.redhat.com/auth/realms/redhat-external/protocol/openid-connect/token"
CLIENT_ID = "cloud-services"
DEFAULT_TIMEOUT = 30.0
# refresh access tokens this long before they actually expire
TOKEN_EXPIRY_BUFFER = 5 * 60
# floor for a request timeout derived from an almost-spent deadline
MIN_REQUEST_TIMEOUT = 0.1


class AssistedInstallerClient:
    """
    Minimal Assisted Service (v2) client: cluster lookup and install action.

    Implements the StatusSource contract (fetch_status / trigger_install).
    Authentication:
      - an offline token is exchanged for a short-lived access token at the
        Red Hat SSO endpoint and cached until shortly before expiry
      - tokens starting with ``test-`` are sent verbatim (local/mock services)
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        offline_token: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        verify_tls: bool = True,
        token_endpoint: str = TOKEN_ENDPOINT,
        clock: Callable[[], float] = time.time,
    ):
        self.base_url = (base_url or DEFAULT_BASE_URL).rstrip("/")
        self.offline_token = offline_token
        self.timeout = timeout or DEFAULT_TIMEOUT
        self.verify_tls = verify_tls
        self.token_endpoint = token_endpoint
        self._clock = clock
        self._access_token: Optional[str] = None
        self._token_expiry = 0.0
        self._token_lock = threading.Lock()

    @classmethod
    def from_config(cls, api) -> "AssistedInstallerClient":
        return cls(
            base_url=str(api.base_url),
            offline_token=api.offline_token or "",
            timeout=api.timeout_seconds,
            verify_tls=api.verify_tls,
        )

    # -----------------------
    # Auth
    # -----------------------
    def _refresh_access_token(self, timeout: float) -> None:
        if not self.offline_token:
            raise AuthenticationError("no offline token provided")

        data = {
            "grant_type": "refresh_token",
            "client_id": CLIENT_ID,
            "refresh_token": self.offline_token,
        }
        try:
            r = requests.post(
                self.token_endpoint,
                data=data,
                headers={"Accept": "application/json"},
                verify=self.verify_tls,
                timeout=timeout,
            )
        except requests.RequestException as exc:
            raise AuthenticationError(f"failed to refresh token: {exc}", transient=True) from exc

        if r.status_code != 200:
            raise AuthenticationError(
                f"token refresh failed with status {r.status_code}: {r.text}",
                transient=r.status_code >= 500,
            )

        try:
            body = r.json()
            token = body.get("access_token")
            expires_in = int(body.get("expires_in", 0))
        except (ValueError, TypeError, AttributeError) as exc:
            raise AuthenticationError(f"unreadable token response: {exc}") from exc
        if not token:
            raise AuthenticationError(f"token response missing access_token: {r.text}")

        self._access_token = token
        self._token_expiry = self._clock() + expires_in - TOKEN_EXPIRY_BUFFER
        log.debug("Access token refreshed")

    def _token(self, timeout: float) -> str:
        if self.offline_token.startswith("test-"):
            return self.offline_token

        with self._token_lock:
            if not self._access_token or self._clock() >= self._token_expiry:
                self._refresh_access_token(timeout)
            return self._access_token

    # -----------------------
    # HTTP helpers
    # -----------------------
    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{API_VERSION}/{endpoint.lstrip('/')}"

    def _request_timeout(self, remaining: Optional[float]) -> float:
        if remaining is None:
            return self.timeout
        return max(min(self.timeout, remaining), MIN_REQUEST_TIMEOUT)

    def _request(
        self,
        method: str,
        endpoint: str,
        *,
        payload: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        req_timeout = self._request_timeout(timeout)
        headers = {"Accept": "application/json"}
        token = self._token(req_timeout)
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if payload is not None:
            headers["Content-Type"] = "application/json"

        try:
            r = requests.request(
                method,
                self._url(endpoint),
                json=payload,
                headers=headers,
                verify=self.verify_tls,
                timeout=req_timeout,
            )
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise StatusSourceError(f"{method} {endpoint} failed: {exc}", transient=True) from exc
        except requests.RequestException as exc:
            raise StatusSourceError(f"{method} {endpoint} failed: {exc}") from exc

        if r.status_code >= 400:
            raise ApiError(r.status_code, r.text, endpoint=f"{method} {endpoint}")
        return r

    # -----------------------
    # Clusters
    # -----------------------
    def get_cluster(self, cluster_id: str, *, timeout: Optional[float] = None) -> Dict[str, Any]:
        r = self._request("GET", f"clusters/{cluster_id}", timeout=timeout)
        try:
            return r.json()
        except ValueError as exc:
            raise StatusFetchError(f"failed to decode cluster {cluster_id}: {exc}") from exc

    def install_cluster(self, cluster_id: str, *, timeout: Optional[float] = None) -> None:
        self._request("POST", f"clusters/{cluster_id}/actions/install", timeout=timeout)

    # -----------------------
    # StatusSource
    # -----------------------
    def fetch_status(self, cluster_id: str, *, timeout: Optional[float] = None) -> ClusterSnapshot:
        try:
            cluster = self.get_cluster(cluster_id, timeout=timeout)
        except (StatusFetchError, AuthenticationError):
            raise
        except StatusSourceError as exc:
            raise StatusFetchError(str(exc), transient=exc.transient) from exc

        if not isinstance(cluster, dict):
            raise StatusFetchError(f"cluster {cluster_id} response is not an object: {cluster!r}")
        status = cluster.get("status")
        if not status or not isinstance(status, str):
            raise StatusFetchError(f"cluster {cluster_id} response has no status: {cluster}")
        try:
            host_count = int(cluster.get("total_host_count") or 0)
        except (TypeError, ValueError) as exc:
            raise StatusFetchError(f"cluster {cluster_id} has a bad total_host_count: {exc}") from exc

        return ClusterSnapshot(
            cluster_id=cluster.get("id") or cluster_id,
            status=status,
            status_info=cluster.get("status_info") or "",
            host_count=host_count,
        )

    def trigger_install(self, cluster_id: str, *, timeout: Optional[float] = None) -> None:
        self.install_cluster(cluster_id, timeout=timeout)
