import os
import sqlite3
from typing import Optional, cast

from src.api.routers.runtime_utils import env_int
from src.core.pages.create import DEFAULT_SUBMIT_COOLDOWN_MS
from src.core.proposals.links import ProposalLinks
from src.core.proposals.repository import RecordStore
from src.core.proposals.store import ProposalStore
from src.infrastructure.proposals import (
    InMemoryRecordStore,
    PostgresRecordStore,
    SqliteRecordStore,
)

DEFAULT_SQLITE_PATH = ".data/proposals.sqlite"
DEFAULT_PUBLIC_BASE_URL = "http://localhost:8000/"
DEFAULT_PAGE_SESSION_CACHE_SIZE = 1000

_STORE: Optional[ProposalStore] = None


def proposal_store_backend_name() -> str:
    backend = os.getenv("PROPOSAL_STORE_BACKEND", "IN_MEMORY").strip().upper()
    if backend in {"SQLITE", "POSTGRES"}:
        return backend
    return "IN_MEMORY"


def proposal_sqlite_path() -> str:
    return os.getenv("PROPOSAL_SQLITE_PATH", DEFAULT_SQLITE_PATH).strip() or DEFAULT_SQLITE_PATH


def proposal_postgres_dsn() -> str:
    return os.getenv("PROPOSAL_POSTGRES_DSN", "").strip()


def proposal_public_base_url() -> str:
    value = os.getenv("PROPOSAL_PUBLIC_BASE_URL", DEFAULT_PUBLIC_BASE_URL).strip()
    return value or DEFAULT_PUBLIC_BASE_URL


def proposal_submit_cooldown_ms() -> int:
    return env_int("PROPOSAL_SUBMIT_COOLDOWN_MS", DEFAULT_SUBMIT_COOLDOWN_MS, minimum=0)


def proposal_page_session_cache_size() -> int:
    return env_int("PROPOSAL_PAGE_SESSION_CACHE_SIZE", DEFAULT_PAGE_SESSION_CACHE_SIZE)


def _postgres_connection_exception_types() -> tuple[type[BaseException], ...]:
    types: list[type[BaseException]] = [
        ConnectionError,
        OSError,
        TimeoutError,
        TypeError,
        ValueError,
    ]
    try:
        import psycopg
    except ImportError:
        pass
    else:
        types.append(psycopg.Error)
    return tuple(types)


def build_repository() -> RecordStore:
    backend = proposal_store_backend_name()
    if backend == "POSTGRES":
        dsn = proposal_postgres_dsn()
        if not dsn:
            raise RuntimeError("PROPOSAL_POSTGRES_DSN_REQUIRED")
        try:
            return cast(RecordStore, PostgresRecordStore(dsn=dsn))
        except RuntimeError:
            raise
        except _postgres_connection_exception_types() as exc:
            raise RuntimeError("PROPOSAL_POSTGRES_CONNECTION_FAILED") from exc
    if backend == "SQLITE":
        try:
            return SqliteRecordStore(database_path=proposal_sqlite_path())
        except (OSError, sqlite3.Error) as exc:
            raise RuntimeError("PROPOSAL_SQLITE_INIT_FAILED") from exc
    return InMemoryRecordStore()


def build_links() -> ProposalLinks:
    return ProposalLinks(base_url=proposal_public_base_url())


def get_proposal_store() -> ProposalStore:
    global _STORE
    if _STORE is None:
        _STORE = ProposalStore(repository=build_repository())
    return _STORE


def reset_proposal_store_for_tests(store: Optional[ProposalStore] = None) -> None:
    global _STORE
    _STORE = store
