"""
Observability hook for analyses.

Hooks are plain callables `hook(event, fields)` handed to the orchestrator
and the factor providers. `log_event` writes to the logging system;
`EventRecorder` keeps events in memory.
"""

import logging
import threading
import time
from collections import deque
from typing import Any, Callable, Dict, List, Optional

log = logging.getLogger("core.events")

EventHook = Callable[[str, Dict[str, Any]], None]

_LEVELS = {
    "provider_degraded": logging.WARNING,
    "analysis_failed": logging.ERROR,
    "point_scored": logging.DEBUG,
}


def log_event(event: str, fields: Dict[str, Any]) -> None:
    """Default hook: one log line per event."""
    level = _LEVELS.get(event, logging.INFO)
    if log.isEnabledFor(level):
        detail = " ".join(f"{k}={v}" for k, v in fields.items())
        log.log(level, f"{event} {detail}")


def emit(hook: EventHook, event: str, fields: Dict[str, Any]) -> None:
    """Call a hook. A failing hook is logged and never interrupts an analysis."""
    try:
        hook(event, fields)
    except Exception:
        log.exception(f"Event hook failed for {event}")


class EventRecorder:
    """
    In-memory hook that keeps the most recent events.

    Usage:
        recorder = EventRecorder()
        orchestrator = AnalysisOrchestrator(provider, hook=recorder)
        ...
        recorder.names()  # ["analysis_started", "point_scored", ...]
    """

    def __init__(self, maxlen: int = 1000, forward: Optional[EventHook] = None):
        self._events: deque = deque(maxlen=maxlen)
        self._lock = threading.Lock()
        self._forward = forward

    def __call__(self, event: str, fields: Dict[str, Any]) -> None:
        with self._lock:
            self._events.append({"event": event, "timestamp": time.time(), **fields})
        if self._forward is not None:
            self._forward(event, fields)

    @property
    def events(self) -> List[Dict[str, Any]]:
        with self._lock:
            return list(self._events)

    def names(self) -> List[str]:
        return [e["event"] for e in self.events]

    def of_type(self, event: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e["event"] == event]
