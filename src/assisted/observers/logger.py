# src/assisted/observers/logger.py
from __future__ import annotations
import logging
from .events import BaseEvent, ClusterStatusUpdate


class LoggerObserver:
    """Mirrors events into the run log; status polls go to DEBUG."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def notify(self, event: BaseEvent) -> None:
        d = event.dict()
        etype = event.__class__.__name__
        msg = ", ".join(f"{k}={v}" for k, v in d.items() if k not in ("ts", "env"))

        level = logging.DEBUG if isinstance(event, ClusterStatusUpdate) else logging.INFO
        self.logger.log(level, f"[EVENT] {etype}: {msg}")
