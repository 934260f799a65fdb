from datetime import timedelta

import pytest
import requests

from assisted.client.assisted import (
    DEFAULT_TIMEOUT,
    TOKEN_ENDPOINT,
    AssistedInstallerClient,
)
from assisted.errors import ApiError, AuthenticationError, StatusFetchError
from assisted.install.models import Phase, ReconciliationRequest
from assisted.install.reconciler import InstallationReconciler
from assisted.state.store import StateStore


class DummyResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text or (str(payload) if payload is not None else "")

    def json(self):
        if self._payload is None:
            raise ValueError("no json")
        return self._payload


class Recorder:
    """Stands in for requests.request, answering from a queue."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


def _client(**kw):
    kw.setdefault("base_url", "http://assisted.local/api/assisted-install/")
    kw.setdefault("offline_token", "test-abc")
    return AssistedInstallerClient(**kw)


def test_fetch_status_maps_cluster_fields(monkeypatch):
    rec = Recorder(DummyResponse(payload={
        "id": "c1",
        "status": "ready",
        "status_info": "Cluster ready to be installed",
        "total_host_count": 3,
    }))
    monkeypatch.setattr(requests, "request", rec)

    snap = _client().fetch_status("c1", timeout=12)

    assert snap.cluster_id == "c1"
    assert snap.status == "ready"
    assert snap.status_info == "Cluster ready to be installed"
    assert snap.host_count == 3

    method, url, kwargs = rec.calls[0]
    assert method == "GET"
    assert url == "http://assisted.local/api/assisted-install/v2/clusters/c1"
    assert kwargs["headers"]["Authorization"] == "Bearer test-abc"
    assert kwargs["timeout"] == 12


def test_missing_host_count_is_zero(monkeypatch):
    monkeypatch.setattr(requests, "request", Recorder(DummyResponse(payload={"status": "insufficient"})))
    snap = _client().fetch_status("c1")
    assert snap.host_count == 0
    assert snap.status_info == ""


def test_missing_status_is_an_error(monkeypatch):
    monkeypatch.setattr(requests, "request", Recorder(DummyResponse(payload={"id": "c1"})))
    with pytest.raises(StatusFetchError):
        _client().fetch_status("c1")


@pytest.mark.parametrize("code,transient", [(503, True), (429, True), (404, False), (401, False)])
def test_http_errors_carry_transience(monkeypatch, code, transient):
    monkeypatch.setattr(requests, "request", Recorder(DummyResponse(status_code=code, text="nope")))
    with pytest.raises(StatusFetchError) as ei:
        _client().fetch_status("c1")
    assert ei.value.transient is transient
    assert str(code) in str(ei.value)


def test_connection_errors_are_transient(monkeypatch):
    monkeypatch.setattr(requests, "request", Recorder(requests.ConnectionError("refused")))
    with pytest.raises(StatusFetchError) as ei:
        _client().fetch_status("c1")
    assert ei.value.transient


def test_install_posts_action(monkeypatch):
    rec = Recorder(DummyResponse(status_code=202, payload={"id": "c1", "status": "preparing-for-installation"}))
    monkeypatch.setattr(requests, "request", rec)

    _client().trigger_install("c1")

    method, url, _ = rec.calls[0]
    assert method == "POST"
    assert url.endswith("/v2/clusters/c1/actions/install")


def test_install_conflict_raises(monkeypatch):
    monkeypatch.setattr(requests, "request", Recorder(DummyResponse(status_code=409, text="not ready")))
    with pytest.raises(ApiError) as ei:
        _client().trigger_install("c1")
    assert ei.value.status_code == 409
    assert not ei.value.transient


@pytest.mark.parametrize("remaining,expected", [(0.05, 0.1), (5, 5), (None, DEFAULT_TIMEOUT), (600, DEFAULT_TIMEOUT)])
def test_request_timeout_follows_deadline(monkeypatch, remaining, expected):
    rec = Recorder(DummyResponse(payload={"status": "ready"}))
    monkeypatch.setattr(requests, "request", rec)
    _client().fetch_status("c1", timeout=remaining)
    assert rec.calls[0][2]["timeout"] == pytest.approx(expected)


def test_offline_token_is_exchanged_and_cached(monkeypatch):
    now = [1000.0]
    posts = []

    def fake_post(url, data=None, **kwargs):
        posts.append((url, data))
        return DummyResponse(payload={"access_token": f"at-{len(posts)}", "expires_in": 900})

    rec = Recorder(DummyResponse(payload={"status": "ready"}))
    monkeypatch.setattr(requests, "post", fake_post)
    monkeypatch.setattr(requests, "request", rec)

    client = _client(offline_token="offline", clock=lambda: now[0])
    client.fetch_status("c1")
    client.fetch_status("c1")
    assert len(posts) == 1
    assert posts[0][0] == TOKEN_ENDPOINT
    assert posts[0][1]["grant_type"] == "refresh_token"
    assert posts[0][1]["refresh_token"] == "offline"
    assert rec.calls[-1][2]["headers"]["Authorization"] == "Bearer at-1"

    # inside the five minute buffer the token is refreshed
    now[0] += 601
    client.fetch_status("c1")
    assert len(posts) == 2
    assert rec.calls[-1][2]["headers"]["Authorization"] == "Bearer at-2"


def test_rejected_offline_token(monkeypatch):
    monkeypatch.setattr(requests, "post", lambda *a, **k: DummyResponse(status_code=400, text="invalid_grant"))
    monkeypatch.setattr(requests, "request", Recorder(DummyResponse(payload={"status": "ready"})))
    with pytest.raises(AuthenticationError) as ei:
        _client(offline_token="offline").fetch_status("c1")
    assert not ei.value.transient


def test_no_token_configured():
    with pytest.raises(AuthenticationError):
        _client(offline_token="").fetch_status("c1")


def test_non_json_token_response(monkeypatch):
    # an SSO outage page served with 200
    monkeypatch.setattr(requests, "post", lambda *a, **k: DummyResponse(status_code=200, text="<html>down</html>"))
    monkeypatch.setattr(requests, "request", Recorder(DummyResponse(payload={"status": "ready"})))
    with pytest.raises(AuthenticationError) as ei:
        _client(offline_token="offline").fetch_status("c1")
    assert "unreadable token response" in str(ei.value)


@pytest.mark.parametrize("payload", [["not", "a", "cluster"], {"status": 7}, {"status": "ready", "total_host_count": "many"}])
def test_malformed_cluster_body(monkeypatch, payload):
    monkeypatch.setattr(requests, "request", Recorder(DummyResponse(payload=payload)))
    with pytest.raises(StatusFetchError):
        _client().fetch_status("c1")


def test_reconcile_survives_a_broken_sso(monkeypatch, tmp_path):
    monkeypatch.setattr(requests, "post", lambda *a, **k: DummyResponse(status_code=200, text="<html>down</html>"))
    store = StateStore(tmp_path)
    outcome = InstallationReconciler(_client(offline_token="offline"), state_store=store).reconcile(
        ReconciliationRequest(cluster_id="c1", timeout=timedelta(seconds=5))
    )

    assert not outcome.succeeded
    assert outcome.phase is Phase.STATUS_CHECK
    assert store.load("c1").status == "unknown"
