import uuid
from collections import OrderedDict
from threading import Lock
from typing import Callable, Generic, Optional, TypeVar

SessionT = TypeVar("SessionT")


def new_page_session_id() -> str:
    return f"ps_{uuid.uuid4().hex[:16]}"


class PageSessionCache(Generic[SessionT]):
    """Bounded LRU map of page-session key to controller session state."""

    def __init__(
        self, *, max_size: int, factory: Optional[Callable[[], SessionT]] = None
    ) -> None:
        self._lock = Lock()
        self._factory = factory
        self._max_size = max_size
        self._sessions: "OrderedDict[str, SessionT]" = OrderedDict()

    def get_or_create(
        self, key: str, factory: Optional[Callable[[], SessionT]] = None
    ) -> SessionT:
        build = factory or self._factory
        if build is None:
            raise ValueError("PAGE_SESSION_FACTORY_REQUIRED")
        with self._lock:
            session = self._sessions.get(key)
            if session is None:
                session = build()
                self._sessions[key] = session
            self._sessions.move_to_end(key)
            while len(self._sessions) > self._max_size:
                self._sessions.popitem(last=False)
            return session

    def peek(self, key: str) -> Optional[SessionT]:
        with self._lock:
            return self._sessions.get(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
