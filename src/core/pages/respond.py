import logging
import random
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Optional

from src.core.common.clock import Clock, epoch_millis
from src.core.common.sanitize import is_valid_id
from src.core.pages.display import theme_for
from src.core.pages.models import AcceptOutcome, DodgeState, RespondView
from src.core.pages.presentation import CueRecorder, Presentation
from src.core.proposals.lifecycle import next_status
from src.core.proposals.links import ProposalLinks
from src.core.proposals.models import ProposalStatus
from src.core.proposals.store import ProposalStore

NO_BUTTON_LABELS = ("No", "Are you sure?", "Really?", "Think again...", "Please? 🥺", "💔")
DODGE_SCALE_STEP = 0.1
DODGE_SCALE_FLOOR = 0.4
SHRINK_SCALE_STEP = 0.15
SHRINK_SCALE_FLOOR = 0.3
HIDE_BELOW_SCALE = 0.5
CONFIRMED_REDIRECT_DELAY_MS = 1500
UNCONFIRMED_REDIRECT_DELAY_MS = 1000

logger = logging.getLogger(__name__)


@dataclass
class RespondSession:
    """State of one respondent page: cached status, accept guard, and the No button."""

    status: Optional[ProposalStatus] = None
    no_button_scale: float = 1.0
    no_button_index: int = 0
    no_button_hidden: bool = False
    _accept_guard: Lock = field(default_factory=Lock, init=False, repr=False, compare=False)

    @property
    def accepting(self) -> bool:
        return self._accept_guard.locked()

    def claim_accept(self) -> bool:
        return self._accept_guard.acquire(blocking=False)

    def release_accept(self) -> None:
        if self._accept_guard.locked():
            self._accept_guard.release()

    @property
    def no_button_label(self) -> str:
        return NO_BUTTON_LABELS[self.no_button_index]


class RespondPageController:
    def __init__(
        self,
        *,
        store: ProposalStore,
        links: ProposalLinks,
        clock: Clock = epoch_millis,
        presentation: Optional[Presentation] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._store = store
        self._links = links
        self._clock = clock
        self._presentation = presentation
        self._rng = rng or random.Random()

    def open(self, raw_id: Any, session: RespondSession) -> RespondView:
        cues = CueRecorder(forward_to=self._presentation)
        if not is_valid_id(raw_id):
            return self._redirect(cues, self._links.home())
        proposal_id: str = raw_id

        proposal = self._store.get(proposal_id)
        if proposal is None:
            cues.emit("error.panel")
            cues.emit("particles.init", theme="ambient")
            return RespondView(state="ERROR", proposal_id=proposal_id, cues=cues.drain())

        theme, particle_theme, music_track = theme_for(proposal.proposer_gender)
        cues.emit("theme.apply", theme=theme)
        cues.emit("particles.init", theme=particle_theme)

        status = proposal.status
        if status == "pending":
            self._store.update_status(proposal_id, {"status": "opened", "openedAt": self._clock()})
            # the local copy moves on even if the write failed
            status = next_status(status, "OPEN")
        session.status = status

        if status == "accepted":
            return self._redirect(
                cues, self._links.celebrate(proposal_id), proposal_id=proposal_id, status=status
            )

        cues.emit("music.play", track=music_track, loop=True)
        cues.emit("card.reveal", target="glassCard")
        cues.emit("sfx.play", name="heartbeat")
        cues.emit(
            "text.typewriter", target="partnerNameDisplay", text=proposal.partner_name, speed=100
        )
        cues.emit("button.pulse", target="yesBtn")
        return RespondView(
            state="READY",
            proposal_id=proposal_id,
            status=status,
            theme=theme,
            from_text=f"From {proposal.proposer_name}",
            partner_name=proposal.partner_name,
            no_button_label=session.no_button_label,
            cues=cues.drain(),
        )

    def accept(self, raw_id: Any, session: RespondSession) -> AcceptOutcome:
        cues = CueRecorder(forward_to=self._presentation)
        if not is_valid_id(raw_id):
            home = self._links.home()
            cues.emit("page.redirect", url=home, delay_ms=0)
            return AcceptOutcome(state="REDIRECT", redirect_to=home, cues=cues.drain())
        proposal_id: str = raw_id

        if not session.claim_accept():
            return AcceptOutcome(state="IGNORED", cues=cues.drain())

        status = session.status
        if status is None:
            proposal = self._store.get(proposal_id)
            if proposal is None:
                session.release_accept()
                cues.emit("error.panel")
                return AcceptOutcome(state="ERROR", cues=cues.drain())
            status = proposal.status

        celebrate_url = self._links.celebrate(proposal_id)
        if status == "accepted":
            session.status = status
            cues.emit("page.redirect", url=celebrate_url, delay_ms=0)
            return AcceptOutcome(
                state="REDIRECT", confirmed=True, redirect_to=celebrate_url, cues=cues.drain()
            )
        if status == "pending":
            self._store.update_status(proposal_id, {"status": "opened", "openedAt": self._clock()})
            status = next_status(status, "OPEN")

        cues.emit("sfx.play", name="success")
        cues.emit("confetti.burst", particle_count=150, spread=100, origin_y=0.6)
        cues.emit("button.success", target="yesBtn")

        confirmed = self._store.update_status(
            proposal_id,
            {"status": next_status(status, "ACCEPT"), "acceptedAt": self._clock()},
        )
        # Optimistic: the respondent proceeds to the celebration either way.
        if confirmed:
            session.status = "accepted"
            cues.emit("music.fade_out", duration_ms=1500)
            delay_ms = CONFIRMED_REDIRECT_DELAY_MS
        else:
            session.status = status
            logger.warning(
                "Accept write not confirmed; redirecting anyway. ProposalID=%s", proposal_id
            )
            delay_ms = UNCONFIRMED_REDIRECT_DELAY_MS
        cues.emit("page.redirect", url=celebrate_url, delay_ms=delay_ms)
        return AcceptOutcome(
            state="REDIRECT", confirmed=confirmed, redirect_to=celebrate_url, cues=cues.drain()
        )

    def dodge(self, session: RespondSession) -> DodgeState:
        cues = CueRecorder(forward_to=self._presentation)
        return self._dodge(session, cues)

    def refuse(self, session: RespondSession) -> DodgeState:
        """A click on No: dodge first, then shrink once the labels run out."""
        cues = CueRecorder(forward_to=self._presentation)
        state = self._dodge(session, cues)
        if session.no_button_index >= len(NO_BUTTON_LABELS) - 1:
            session.no_button_scale = max(
                SHRINK_SCALE_FLOOR, round(session.no_button_scale - SHRINK_SCALE_STEP, 2)
            )
            cues.emit("button.shrink", target="noBtn", scale=session.no_button_scale)
            if session.no_button_scale < HIDE_BELOW_SCALE and not session.no_button_hidden:
                session.no_button_hidden = True
                cues.emit("button.hide", target="noContainer")
        return state.model_copy(
            update={
                "scale": session.no_button_scale,
                "hidden": session.no_button_hidden,
                "cues": state.cues + cues.drain(),
            }
        )

    def _dodge(self, session: RespondSession, cues: CueRecorder) -> DodgeState:
        # never grows back once a refusal has shrunk it below the dodge floor
        session.no_button_scale = min(
            session.no_button_scale,
            max(DODGE_SCALE_FLOOR, round(session.no_button_scale - DODGE_SCALE_STEP, 2)),
        )
        if session.no_button_index < len(NO_BUTTON_LABELS) - 1:
            session.no_button_index += 1
        offset_x = round(self._rng.uniform(-1.0, 1.0), 3)
        offset_y = round(self._rng.uniform(-1.0, 1.0), 3)
        cues.emit(
            "button.dodge",
            target="noBtn",
            offset_x=offset_x,
            offset_y=offset_y,
            scale=session.no_button_scale,
            label=session.no_button_label,
        )
        return DodgeState(
            label=session.no_button_label,
            scale=session.no_button_scale,
            offset_x=offset_x,
            offset_y=offset_y,
            hidden=session.no_button_hidden,
            cues=cues.drain(),
        )

    @staticmethod
    def _redirect(
        cues: CueRecorder,
        url: str,
        *,
        proposal_id: Optional[str] = None,
        status: Optional[ProposalStatus] = None,
    ) -> RespondView:
        cues.emit("page.redirect", url=url, delay_ms=0)
        return RespondView(
            state="REDIRECT",
            proposal_id=proposal_id,
            status=status,
            redirect_to=url,
            cues=cues.drain(),
        )
