from __future__ import annotations

import logging
from typing import List, Optional

import pytest

from assisted.install.status import ClusterSnapshot


class FakeStatusSource:
    """
    Scripted Status Source.

    Each fetch consumes the next script entry; the last entry repeats.
    Entries are (status, host_count[, status_info]) tuples or exceptions to raise.
    """

    def __init__(self, script, trigger_error: Optional[Exception] = None):
        self.script = list(script)
        self.trigger_error = trigger_error
        self.fetch_calls = 0
        self.trigger_calls = 0
        self.fetch_timeouts: List[Optional[float]] = []
        self.trigger_timeouts: List[Optional[float]] = []

    def fetch_status(self, cluster_id, *, timeout=None):
        self.fetch_calls += 1
        self.fetch_timeouts.append(timeout)
        item = self.script[min(self.fetch_calls, len(self.script)) - 1]
        if isinstance(item, Exception):
            raise item
        status, hosts, *rest = item
        return ClusterSnapshot(
            cluster_id=cluster_id,
            status=status,
            status_info=rest[0] if rest else f"cluster is {status}",
            host_count=hosts,
        )

    def trigger_install(self, cluster_id, *, timeout=None):
        self.trigger_calls += 1
        self.trigger_timeouts.append(timeout)
        if self.trigger_error is not None:
            raise self.trigger_error


class Capture:
    def __init__(self): self.events = []
    def notify(self, ev): self.events.append(ev)


@pytest.fixture
def fake_source():
    return FakeStatusSource


@pytest.fixture
def capture():
    return Capture()


@pytest.fixture(autouse=True)
def _reset_assisted_logger():
    """init_logging() detaches the project logger from root; put it back."""
    yield
    logger = logging.getLogger("assisted")
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
