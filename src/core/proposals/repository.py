from typing import Any, Callable, Optional, Protocol

RecordValue = dict[str, Any]
ValueCallback = Callable[[Optional[RecordValue]], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class RecordStore(Protocol):
    """Hosted realtime key-value store holding one JSON object per path."""

    def read(self, *, path: str) -> Optional[RecordValue]: ...

    def write(self, *, path: str, value: RecordValue) -> None: ...

    def partial_update(self, *, path: str, fields: RecordValue) -> None: ...

    def subscribe(
        self, *, path: str, on_value: ValueCallback, on_error: ErrorCallback
    ) -> Unsubscribe: ...
