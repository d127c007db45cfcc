from src.core.proposals.lifecycle import (
    LifecycleTransitionError,
    can_transition,
    furthest_status,
    next_status,
)
from src.core.proposals.links import ProposalLinks, proposal_id_from_query
from src.core.proposals.models import (
    Proposal,
    ProposalCreateRequest,
    ProposalCreateResponse,
    ProposalLinksResponse,
    ProposalStatusUpdateRequest,
    ProposalStatusUpdateResponse,
)
from src.core.proposals.repository import RecordStore
from src.core.proposals.store import (
    AlreadyExistsError,
    EmptyNameError,
    InvalidIdError,
    ListenerError,
    NotFoundError,
    ProposalStore,
    ProposalStoreError,
    StoreUnavailableError,
)
from src.core.proposals.subscription import Subscription

__all__ = [
    "AlreadyExistsError",
    "EmptyNameError",
    "InvalidIdError",
    "LifecycleTransitionError",
    "ListenerError",
    "NotFoundError",
    "Proposal",
    "ProposalCreateRequest",
    "ProposalCreateResponse",
    "ProposalLinks",
    "ProposalLinksResponse",
    "ProposalStatusUpdateRequest",
    "ProposalStatusUpdateResponse",
    "ProposalStore",
    "ProposalStoreError",
    "RecordStore",
    "StoreUnavailableError",
    "Subscription",
    "can_transition",
    "furthest_status",
    "next_status",
    "proposal_id_from_query",
]
