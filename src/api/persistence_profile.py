from __future__ import annotations

import os

from src.api.routers.proposals_config import (
    proposal_postgres_dsn,
    proposal_store_backend_name,
)

_PRODUCTION_PROFILE = "PRODUCTION"
_LOCAL_PROFILE = "LOCAL"
_DURABLE_BACKENDS = {"SQLITE", "POSTGRES"}


def app_persistence_profile_name() -> str:
    profile = os.getenv("APP_PERSISTENCE_PROFILE", _LOCAL_PROFILE).strip().upper()
    return _PRODUCTION_PROFILE if profile == _PRODUCTION_PROFILE else _LOCAL_PROFILE


def validate_persistence_profile_guardrails() -> None:
    """Refuse to start a production profile on the in-memory store."""
    if app_persistence_profile_name() != _PRODUCTION_PROFILE:
        return
    backend = proposal_store_backend_name()
    if backend not in _DURABLE_BACKENDS:
        raise RuntimeError("PERSISTENCE_PROFILE_REQUIRES_DURABLE_PROPOSAL_STORE")
    if backend == "POSTGRES" and not proposal_postgres_dsn():
        raise RuntimeError("PERSISTENCE_PROFILE_REQUIRES_PROPOSAL_POSTGRES_DSN")
