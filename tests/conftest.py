"""
FILE: tests/conftest.py
Shared fixtures for proposal store, page controller, and API tests.
"""

from pathlib import Path

import pytest

from src.api.routers.pages import reset_page_sessions_for_tests
from src.api.routers.proposals_config import reset_proposal_store_for_tests
from src.core.proposals import ProposalLinks, ProposalStore
from src.infrastructure.proposals import InMemoryRecordStore

BASE_URL = "https://valentine.example/"
FIXED_NOW = 1_771_065_000_000  # 2026-02-14T10:30:00Z


def _has_marker(item: pytest.Item, name: str) -> bool:
    return item.get_closest_marker(name) is not None


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if _has_marker(item, "unit") or _has_marker(item, "integration"):
            continue

        path = Path(str(item.fspath)).as_posix().lower()
        if "/tests/integration/" in path or "_integration.py" in path:
            item.add_marker(pytest.mark.integration)
            continue
        item.add_marker(pytest.mark.unit)


class FakeClock:
    def __init__(self, now: int = FIXED_NOW) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def records() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def store(records: InMemoryRecordStore, clock: FakeClock) -> ProposalStore:
    return ProposalStore(repository=records, clock=clock)


@pytest.fixture
def links() -> ProposalLinks:
    return ProposalLinks(base_url=BASE_URL)


@pytest.fixture(autouse=True)
def in_memory_runtime_test_harness(monkeypatch: pytest.MonkeyPatch):
    """Run the API on a fresh in-memory store with page sessions cleared."""

    monkeypatch.setenv("PROPOSAL_STORE_BACKEND", "IN_MEMORY")
    monkeypatch.setenv("PROPOSAL_PUBLIC_BASE_URL", BASE_URL)
    monkeypatch.delenv("APP_PERSISTENCE_PROFILE", raising=False)
    monkeypatch.delenv("PROPOSAL_PAGES_ENABLED", raising=False)
    reset_proposal_store_for_tests()
    reset_page_sessions_for_tests()
    yield
    reset_proposal_store_for_tests()
    reset_page_sessions_for_tests()
