import logging
from dataclasses import dataclass, field
from threading import Lock
from typing import Callable, Optional

from src.core.common.clock import Clock, epoch_millis
from src.core.common.sanitize import generate_id, sanitize_text
from src.core.pages.models import CreateForm, CreateOutcome
from src.core.pages.presentation import CueRecorder, Presentation
from src.core.proposals.links import ProposalLinks
from src.core.proposals.store import (
    NAME_MAX_LENGTH,
    AlreadyExistsError,
    EmptyNameError,
    InvalidIdError,
    ProposalStore,
    StoreUnavailableError,
)

DEFAULT_SUBMIT_COOLDOWN_MS = 3000

COOLDOWN_MESSAGE = "Please wait a moment before trying again."
EMPTY_NAMES_MESSAGE = "Please fill in all name fields."
MISSING_GENDER_MESSAGE = "Please select gender for both."
DUPLICATE_ID_MESSAGE = "That link is already taken. Please try again."
CREATE_FAILED_MESSAGE = "Failed to create proposal. Please try again."

logger = logging.getLogger(__name__)


@dataclass
class SubmissionContext:
    """Per page-session submit state: one submission in flight, then a cooldown."""

    cooldown_ms: int = DEFAULT_SUBMIT_COOLDOWN_MS
    last_submit_at: Optional[int] = None
    _guard: Lock = field(default_factory=Lock, init=False, repr=False, compare=False)

    @property
    def in_flight(self) -> bool:
        return self._guard.locked()

    def cooling_down(self, now: int) -> bool:
        return self.last_submit_at is not None and now - self.last_submit_at < self.cooldown_ms

    def begin(self, now: int) -> bool:
        if not self._guard.acquire(blocking=False):
            return False
        self.last_submit_at = now
        return True

    def finish(self) -> None:
        if self._guard.locked():
            self._guard.release()


class CreatePageController:
    def __init__(
        self,
        *,
        store: ProposalStore,
        links: ProposalLinks,
        clock: Clock = epoch_millis,
        id_factory: Callable[[], str] = generate_id,
        presentation: Optional[Presentation] = None,
    ) -> None:
        self._store = store
        self._links = links
        self._clock = clock
        self._id_factory = id_factory
        self._presentation = presentation

    def submit(self, form: CreateForm, context: SubmissionContext) -> CreateOutcome:
        cues = CueRecorder(forward_to=self._presentation)
        now = self._clock()
        if context.cooling_down(now):
            return _rejected(cues, COOLDOWN_MESSAGE)
        if not context.begin(now):
            return CreateOutcome(state="IGNORED", cues=cues.drain())
        try:
            return self._submit(form, cues)
        finally:
            context.finish()

    def _submit(self, form: CreateForm, cues: CueRecorder) -> CreateOutcome:
        proposer_name = sanitize_text(form.proposer_name, NAME_MAX_LENGTH)
        partner_name = sanitize_text(form.partner_name, NAME_MAX_LENGTH)
        if not proposer_name or not partner_name:
            return _rejected(cues, EMPTY_NAMES_MESSAGE)
        if not form.proposer_gender or not form.partner_gender:
            return _rejected(cues, MISSING_GENDER_MESSAGE)

        proposal_id = self._id_factory()
        try:
            self._store.create(
                proposal_id,
                proposer_name=proposer_name,
                proposer_gender=form.proposer_gender,
                partner_name=partner_name,
                partner_gender=form.partner_gender,
            )
        except AlreadyExistsError:
            logger.warning("Generated proposal id collided. ProposalID=%s", proposal_id)
            return _rejected(cues, DUPLICATE_ID_MESSAGE)
        except EmptyNameError:
            return _rejected(cues, EMPTY_NAMES_MESSAGE)
        except (InvalidIdError, StoreUnavailableError):
            return _rejected(cues, CREATE_FAILED_MESSAGE)

        cues.emit("card.reveal", target="successCard")
        return CreateOutcome(
            state="CREATED",
            proposal_id=proposal_id,
            respond_url=self._links.respond(proposal_id),
            track_url=self._links.track(proposal_id),
            cues=cues.drain(),
        )


def _rejected(cues: CueRecorder, message: str) -> CreateOutcome:
    cues.emit("toast.show", message=message, duration_ms=3000)
    return CreateOutcome(state="REJECTED", message=message, cues=cues.drain())
