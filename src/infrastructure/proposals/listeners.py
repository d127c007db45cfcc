import logging
import uuid
from copy import deepcopy
from threading import Lock
from typing import Callable, Optional

from src.core.proposals.repository import (
    ErrorCallback,
    RecordValue,
    Unsubscribe,
    ValueCallback,
)

logger = logging.getLogger(__name__)


class ListenerRegistry:
    """Process-local fan-out of record changes to path listeners."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._listeners: dict[str, dict[str, tuple[ValueCallback, ErrorCallback]]] = {}

    def add(self, *, path: str, on_value: ValueCallback, on_error: ErrorCallback) -> Unsubscribe:
        listener_id = uuid.uuid4().hex
        with self._lock:
            self._listeners.setdefault(path, {})[listener_id] = (on_value, on_error)

        def _remove() -> None:
            with self._lock:
                listeners = self._listeners.get(path)
                if listeners is None:
                    return
                listeners.pop(listener_id, None)
                if not listeners:
                    self._listeners.pop(path, None)

        return _remove

    def listener_count(self, *, path: str) -> int:
        with self._lock:
            return len(self._listeners.get(path, {}))

    def notify(self, *, path: str, value: Optional[RecordValue]) -> None:
        for on_value, _ in self._snapshot(path):
            self.deliver(on_value, deepcopy(value), path=path)

    @staticmethod
    def deliver(on_value: ValueCallback, value: Optional[RecordValue], *, path: str) -> None:
        try:
            on_value(value)
        except Exception:
            logger.exception("Record listener failed. Path=%s", path)

    def _snapshot(self, path: str) -> list[tuple[ValueCallback, ErrorCallback]]:
        with self._lock:
            return list(self._listeners.get(path, {}).values())


def initial_delivery(
    registry: ListenerRegistry,
    *,
    path: str,
    read: Callable[[], Optional[RecordValue]],
    on_value: ValueCallback,
    on_error: ErrorCallback,
) -> Unsubscribe:
    """Register a listener and push the current value to it, realtime-database style."""
    unsubscribe = registry.add(path=path, on_value=on_value, on_error=on_error)
    try:
        current = read()
    except Exception as exc:
        on_error(exc)
        return unsubscribe
    registry.deliver(on_value, current, path=path)
    return unsubscribe
