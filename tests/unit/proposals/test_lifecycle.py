import pytest

from src.core.proposals.lifecycle import (
    LifecycleTransitionError,
    can_transition,
    furthest_status,
    is_terminal,
    next_status,
    status_rank,
)


def test_next_status_follows_open_then_accept():
    assert next_status("pending", "OPEN") == "opened"
    assert next_status("opened", "ACCEPT") == "accepted"


@pytest.mark.parametrize(
    ("current", "event"),
    [("pending", "ACCEPT"), ("opened", "OPEN"), ("accepted", "OPEN"), ("accepted", "ACCEPT")],
)
def test_next_status_rejects_skips_and_backward_moves(current, event):
    with pytest.raises(LifecycleTransitionError) as exc:
        next_status(current, event)
    assert str(exc.value) == f"INVALID_TRANSITION:{current}:{event}"


def test_can_transition_only_between_adjacent_states():
    assert can_transition("pending", "opened")
    assert can_transition("opened", "accepted")
    assert not can_transition("pending", "accepted")
    assert not can_transition("accepted", "opened")
    assert not can_transition("opened", "pending")


def test_status_rank_and_terminal():
    assert status_rank("pending") < status_rank("opened") < status_rank("accepted")
    assert status_rank("declined") == -1
    assert is_terminal("accepted")
    assert not is_terminal("opened")


@pytest.mark.parametrize(
    ("current", "incoming", "expected"),
    [
        (None, "opened", "opened"),
        ("pending", "opened", "opened"),
        ("accepted", "opened", "accepted"),
        ("opened", "pending", "opened"),
        ("opened", "accepted", "accepted"),
    ],
)
def test_furthest_status_never_moves_backward(current, incoming, expected):
    assert furthest_status(current, incoming) == expected
