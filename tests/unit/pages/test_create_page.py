import threading

import pytest

from src.core.pages import CreateForm, CreatePageController, CueRecorder, SubmissionContext
from src.core.pages.create import (
    COOLDOWN_MESSAGE,
    CREATE_FAILED_MESSAGE,
    DUPLICATE_ID_MESSAGE,
    EMPTY_NAMES_MESSAGE,
    MISSING_GENDER_MESSAGE,
)
from src.core.proposals import ProposalStore

PROPOSAL_ID = "val_abc123def"


def _form(**overrides) -> CreateForm:
    values = {
        "proposer_name": "Sam",
        "proposer_gender": "male",
        "partner_name": "Ari",
        "partner_gender": "female",
    }
    values.update(overrides)
    return CreateForm(**values)


@pytest.fixture
def controller(store, links, clock):
    return CreatePageController(
        store=store, links=links, clock=clock, id_factory=lambda: PROPOSAL_ID
    )


def test_submit_creates_pending_proposal_with_links(controller, store):
    outcome = controller.submit(_form(), SubmissionContext())

    assert outcome.state == "CREATED"
    assert outcome.proposal_id == PROPOSAL_ID
    assert outcome.respond_url == "https://valentine.example/proposal.html?id=val_abc123def"
    assert outcome.track_url == "https://valentine.example/tracking.html?id=val_abc123def"
    assert [cue.name for cue in outcome.cues] == ["card.reveal"]
    assert store.get(PROPOSAL_ID).status == "pending"


@pytest.mark.parametrize(
    ("overrides", "message"),
    [
        ({"proposer_name": "   "}, EMPTY_NAMES_MESSAGE),
        ({"partner_name": "<script>x()</script>"}, EMPTY_NAMES_MESSAGE),
        ({"partner_name": None}, EMPTY_NAMES_MESSAGE),
        ({"proposer_gender": None}, MISSING_GENDER_MESSAGE),
        ({"partner_gender": ""}, MISSING_GENDER_MESSAGE),
    ],
)
def test_submit_rejects_incomplete_forms(controller, store, overrides, message):
    outcome = controller.submit(_form(**overrides), SubmissionContext())

    assert outcome.state == "REJECTED"
    assert outcome.message == message
    assert outcome.cues[0].name == "toast.show"
    assert outcome.cues[0].params["message"] == message
    assert store.get(PROPOSAL_ID) is None


def test_submit_enforces_cooldown(controller, clock):
    context = SubmissionContext(cooldown_ms=3000)
    controller.submit(_form(), context)

    clock.advance(2999)
    assert controller.submit(_form(), context).message == COOLDOWN_MESSAGE

    clock.advance(1)
    # the fixed id now collides, which proves the second submission reached the store
    assert controller.submit(_form(), context).message == DUPLICATE_ID_MESSAGE


def test_rejected_submission_still_starts_cooldown(controller):
    context = SubmissionContext()
    controller.submit(_form(proposer_name=""), context)
    assert controller.submit(_form(), context).message == COOLDOWN_MESSAGE


def test_submit_while_in_flight_is_ignored(store, links, clock):
    entered = threading.Event()
    release = threading.Event()

    def _slow_id() -> str:
        entered.set()
        release.wait(timeout=5)
        return PROPOSAL_ID

    controller = CreatePageController(store=store, links=links, clock=clock, id_factory=_slow_id)
    context = SubmissionContext(cooldown_ms=0)
    results = []
    worker = threading.Thread(target=lambda: results.append(controller.submit(_form(), context)))
    worker.start()
    entered.wait(timeout=5)

    assert context.in_flight
    assert controller.submit(_form(), context).state == "IGNORED"

    release.set()
    worker.join(timeout=5)
    assert results[0].state == "CREATED"
    assert not context.in_flight


def test_submit_maps_store_failures(links, clock):
    class _Offline:
        def read(self, *, path):
            raise ConnectionError("offline")

    controller = CreatePageController(
        store=ProposalStore(repository=_Offline()),
        links=links,
        clock=clock,
        id_factory=lambda: PROPOSAL_ID,
    )
    outcome = controller.submit(_form(), SubmissionContext())

    assert outcome.state == "REJECTED"
    assert outcome.message == CREATE_FAILED_MESSAGE


def test_submit_forwards_cues_to_presentation(store, links, clock):
    sink = CueRecorder()
    controller = CreatePageController(
        store=store, links=links, clock=clock, id_factory=lambda: PROPOSAL_ID, presentation=sink
    )
    controller.submit(_form(), SubmissionContext())
    assert sink.names == ["card.reveal"]
