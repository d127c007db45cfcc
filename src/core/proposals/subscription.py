import logging
from threading import Lock
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class Subscription:
    """Handle for a live record listener.

    `close()` detaches the listener exactly once; later calls are no-ops, so the
    handle can be closed from page teardown even after the backend went away.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._detach: Optional[Callable[[], None]] = None
        self._closed = False

    @classmethod
    def noop(cls) -> "Subscription":
        handle = cls()
        handle._closed = True
        return handle

    @property
    def closed(self) -> bool:
        return self._closed

    def attach(self, detach: Callable[[], None]) -> None:
        with self._lock:
            if not self._closed:
                self._detach = detach
                return
        # closed while the listener was being registered
        self._run_detach(detach)

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            detach, self._detach = self._detach, None
        if detach is not None:
            self._run_detach(detach)

    cancel = close

    def __call__(self) -> None:
        self.close()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    @staticmethod
    def _run_detach(detach: Callable[[], None]) -> None:
        try:
            detach()
        except Exception:
            logger.warning("Listener detach failed", exc_info=True)
