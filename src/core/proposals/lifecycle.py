from typing import Optional

from src.core.proposals.models import ProposalLifecycleEvent, ProposalStatus

STATUS_ORDER: tuple[ProposalStatus, ...] = ("pending", "opened", "accepted")
TERMINAL_STATUSES: set[ProposalStatus] = {"accepted"}
SETTABLE_STATUSES: set[ProposalStatus] = {"opened", "accepted"}

TRANSITION_MAP: dict[tuple[ProposalStatus, ProposalLifecycleEvent], ProposalStatus] = {
    ("pending", "OPEN"): "opened",
    ("opened", "ACCEPT"): "accepted",
}


class LifecycleTransitionError(Exception):
    pass


def status_rank(status: Optional[str]) -> int:
    if status in STATUS_ORDER:
        return STATUS_ORDER.index(status)
    return -1


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: str, target: str) -> bool:
    return any(
        source == current and destination == target
        for (source, _), destination in TRANSITION_MAP.items()
    )


def next_status(current: ProposalStatus, event: ProposalLifecycleEvent) -> ProposalStatus:
    target = TRANSITION_MAP.get((current, event))
    if target is None:
        raise LifecycleTransitionError(f"INVALID_TRANSITION:{current}:{event}")
    return target


def furthest_status(current: Optional[ProposalStatus], incoming: ProposalStatus) -> ProposalStatus:
    """Return whichever status is further along; the lifecycle never moves backward."""
    if current is None:
        return incoming
    return incoming if status_rank(incoming) > status_rank(current) else current
