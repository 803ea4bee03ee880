# src/valfleet/observers/dispatcher.py
from __future__ import annotations
import logging
import threading
from typing import List, Optional, Protocol
from .events import BaseEvent

log = logging.getLogger("valfleet")


class Observer(Protocol):
    def notify(self, event: BaseEvent) -> None: ...


class EventBus:
    """Fans events out to observers. Safe to call from fanout worker threads."""

    def __init__(self, observers: Optional[List[Observer]] = None):
        self._observers = observers or []
        self._lock = threading.Lock()

    def emit(self, event: BaseEvent) -> None:
        with self._lock:
            for ob in self._observers:
                try:
                    ob.notify(event)
                except Exception as e:
                    # observers must not break a run
                    log.debug("observer %s failed: %s", type(ob).__name__, e)
