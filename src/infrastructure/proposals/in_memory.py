from copy import deepcopy
from threading import Lock
from typing import Optional

from src.core.proposals.repository import (
    ErrorCallback,
    RecordStore,
    RecordValue,
    Unsubscribe,
    ValueCallback,
)
from src.infrastructure.proposals.listeners import ListenerRegistry, initial_delivery


class InMemoryRecordStore(RecordStore):
    def __init__(self) -> None:
        self._lock = Lock()
        self._records: dict[str, RecordValue] = {}
        self._listeners = ListenerRegistry()

    def read(self, *, path: str) -> Optional[RecordValue]:
        with self._lock:
            record = self._records.get(path)
            return deepcopy(record) if record is not None else None

    def write(self, *, path: str, value: RecordValue) -> None:
        with self._lock:
            self._records[path] = deepcopy(value)
            snapshot = deepcopy(self._records[path])
        self._listeners.notify(path=path, value=snapshot)

    def partial_update(self, *, path: str, fields: RecordValue) -> None:
        with self._lock:
            record = self._records.setdefault(path, {})
            record.update(deepcopy(fields))
            snapshot = deepcopy(record)
        self._listeners.notify(path=path, value=snapshot)

    def delete(self, *, path: str) -> None:
        with self._lock:
            self._records.pop(path, None)
        self._listeners.notify(path=path, value=None)

    def subscribe(
        self, *, path: str, on_value: ValueCallback, on_error: ErrorCallback
    ) -> Unsubscribe:
        return initial_delivery(
            self._listeners,
            path=path,
            read=lambda: self.read(path=path),
            on_value=on_value,
            on_error=on_error,
        )

    def listener_count(self, *, path: str) -> int:
        return self._listeners.listener_count(path=path)
