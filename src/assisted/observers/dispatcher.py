# src/assisted/observers/dispatcher.py
from __future__ import annotations
import logging
from typing import List, Optional, Protocol, runtime_checkable
from .events import BaseEvent

log = logging.getLogger("assisted")


@runtime_checkable
class Observer(Protocol):
    def notify(self, event: BaseEvent) -> None: ...


class EventBus:
    def __init__(self, observers: Optional[List[Observer]] = None):
        self._observers: List[Observer] = list(observers or [])

    def subscribe(self, observer: Observer) -> None:
        if not isinstance(observer, Observer):
            raise TypeError(f"{observer!r} has no notify(event) method")
        self._observers.append(observer)

    def emit(self, event: BaseEvent) -> None:
        for ob in self._observers:
            try:
                ob.notify(event)
            except Exception as exc:
                # observers must not break a reconciliation
                log.debug(f"observer {ob.__class__.__name__} failed on {event.__class__.__name__}: {exc}")
