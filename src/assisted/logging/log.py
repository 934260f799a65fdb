# Copyright 2026 Kezie Iwueke
# SPDX-License-Identifier: Apache-2.0

# src/assisted/logging/log.py

from __future__ import annotations

import logging
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import NamedTuple, Optional

LOGGER_NAME = "assisted"
DEFAULT_LOG_DIR = Path.home() / ".assisted" / "logs"

_FORMAT = "%(asctime)s | %(levelname)-7s | %(run_id).8s %(cluster)s | %(message)s"


class RunLog(NamedTuple):
    logger: logging.Logger
    run_id: str
    path: Path


class _RunContext(logging.Filter):
    """Stamps every record with the cluster and run it belongs to."""

    def __init__(self, cluster_id: Optional[str], run_id: str):
        super().__init__()
        self.cluster = cluster_id or "-"
        self.run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:
        record.cluster = self.cluster
        record.run_id = self.run_id
        return True


def log_path_for(base_dir: Path, cluster_id: Optional[str], run_id: str) -> Path:
    """<base_dir>/<cluster_id>/<timestamp>-<run_id>.log, one directory per cluster."""
    ts = datetime.now(timezone.utc).strftime("%Y%m%d-%H%M%S")
    folder = re.sub(r"[^A-Za-z0-9._-]", "_", cluster_id or "").strip(".") or "_adhoc"
    return base_dir / folder / f"{ts}-{run_id}.log"


def init_logging(
    *,
    cluster_id: Optional[str] = None,
    base_dir: Optional[Path] = None,
    verbose: bool = False,
) -> RunLog:
    """
    Route the project logger to a per-run file (every poll, DEBUG) and the
    console (phase transitions, INFO unless *verbose*).

    Runs against the same cluster share a directory, so the history of one
    installation can be read back in order.
    """
    run_id = str(uuid.uuid4())
    path = log_path_for(Path(base_dir) if base_dir else DEFAULT_LOG_DIR, cluster_id, run_id)
    path.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    for h in list(logger.handlers):
        logger.removeHandler(h)
        h.close()
    logger.propagate = False

    context = _RunContext(cluster_id, run_id)
    formatter = logging.Formatter(_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")

    fh = logging.FileHandler(path)
    fh.setLevel(logging.DEBUG)

    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG if verbose else logging.INFO)

    for handler in (fh, ch):
        handler.setFormatter(formatter)
        handler.addFilter(context)
        logger.addHandler(handler)

    logger.debug(f"log_file={path}")
    return RunLog(logger, run_id, path)
