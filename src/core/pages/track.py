import logging
from datetime import timezone, tzinfo
from threading import Lock
from typing import Any, Callable, List, Optional

from src.core.common.sanitize import is_valid_id
from src.core.pages.display import format_time, object_pronoun, subject_pronoun
from src.core.pages.models import TimelineStep, TrackView
from src.core.pages.presentation import CueRecorder, Presentation
from src.core.proposals.lifecycle import furthest_status
from src.core.proposals.links import ProposalLinks
from src.core.proposals.models import Proposal
from src.core.proposals.store import ProposalStore
from src.core.proposals.subscription import Subscription

ACCEPTED_REDIRECT_DELAY_MS = 2000

logger = logging.getLogger(__name__)


class TrackSession:
    """Last-seen state of one tracking page.

    Pushed values are folded forward-only: a stale `opened` delivered after
    `accepted` never moves the displayed timeline back.
    """

    def __init__(
        self,
        *,
        proposal_id: str,
        links: ProposalLinks,
        presentation: Optional[Presentation] = None,
        tz: tzinfo = timezone.utc,
    ) -> None:
        self.proposal_id = proposal_id
        self._links = links
        self._presentation = presentation
        self._tz = tz
        self._lock = Lock()
        self.current: Optional[Proposal] = None
        self.handled_accepted = False

    def apply(self, proposal: Proposal) -> TrackView:
        cues = CueRecorder(forward_to=self._presentation)
        with self._lock:
            merged = self._fold(proposal)
            self.current = merged
            first_accept = merged.status == "accepted" and not self.handled_accepted
            if first_accept:
                self.handled_accepted = True
        return self._render(merged, cues, first_accept=first_accept)

    def _fold(self, incoming: Proposal) -> Proposal:
        previous = self.current
        if previous is None:
            return incoming
        return incoming.model_copy(
            update={
                "status": furthest_status(previous.status, incoming.status),
                "opened_at": (
                    previous.opened_at if previous.opened_at is not None else incoming.opened_at
                ),
                "accepted_at": (
                    previous.accepted_at
                    if previous.accepted_at is not None
                    else incoming.accepted_at
                ),
            }
        )

    def _render(self, proposal: Proposal, cues: CueRecorder, *, first_accept: bool) -> TrackView:
        subject = subject_pronoun(proposal.partner_gender)
        obj = object_pronoun(proposal.partner_gender)
        seen = proposal.status in ("opened", "accepted")
        accepted = proposal.status == "accepted"

        steps: List[TimelineStep] = [
            TimelineStep(
                key="created",
                state="completed",
                time_text=format_time(proposal.created_at, tz=self._tz),
                label="💌 Proposal created",
            ),
            TimelineStep(
                key="opened",
                state="completed" if seen else "active",
                time_text=format_time(proposal.opened_at, tz=self._tz) if seen else "Waiting...",
                label=f"👀 {subject} has seen it!" if seen else "👀 Not opened yet",
            ),
            TimelineStep(
                key="accepted",
                state="completed" if accepted else ("active" if seen else "pending"),
                time_text=(
                    format_time(proposal.accepted_at, tz=self._tz)
                    if accepted
                    else ("Waiting..." if seen else "-")
                ),
                label=f"💕 {subject} said YES!" if accepted else "💕 Waiting for an answer",
            ),
        ]

        if accepted:
            waiting_text = None
        elif seen:
            waiting_text = f"Waiting for {obj} to respond"
        else:
            waiting_text = f"Waiting for {obj} to open"

        redirect_to = None
        accepted_message = None
        if accepted:
            accepted_message = f"{subject} Said Yes! 💕"
        if first_accept:
            redirect_to = self._links.celebrate(proposal.proposal_id)
            cues.emit("sfx.play", name="confetti")
            cues.emit("confetti.celebrate", duration_ms=5000)
            cues.emit("status.change", step="accepted")
            cues.emit("page.redirect", url=redirect_to, delay_ms=ACCEPTED_REDIRECT_DELAY_MS)

        return TrackView(
            state="READY",
            proposal_id=proposal.proposal_id,
            redirect_to=redirect_to,
            status=proposal.status,
            title=f"{proposal.proposer_name}'s Proposal",
            names_line=f"To: {proposal.partner_name}",
            respond_url=self._links.respond(proposal.proposal_id),
            steps=steps,
            waiting_text=waiting_text,
            accepted_message=accepted_message,
            cues=cues.drain(),
        )


class TrackPageController:
    def __init__(
        self,
        *,
        store: ProposalStore,
        links: ProposalLinks,
        presentation: Optional[Presentation] = None,
        tz: tzinfo = timezone.utc,
    ) -> None:
        self._store = store
        self._links = links
        self._presentation = presentation
        self._tz = tz

    def new_session(self, proposal_id: str) -> TrackSession:
        return TrackSession(
            proposal_id=proposal_id,
            links=self._links,
            presentation=self._presentation,
            tz=self._tz,
        )

    def open(self, raw_id: Any, session: Optional[TrackSession] = None) -> TrackView:
        cues = CueRecorder(forward_to=self._presentation)
        cues.emit("particles.init", theme="ambient")
        if not is_valid_id(raw_id):
            home = self._links.home()
            cues.emit("page.redirect", url=home, delay_ms=0)
            return TrackView(state="REDIRECT", redirect_to=home, cues=cues.drain())
        proposal_id: str = raw_id

        proposal = self._store.get(proposal_id)
        if proposal is None:
            cues.emit("error.panel")
            return TrackView(state="ERROR", proposal_id=proposal_id, cues=cues.drain())

        cues.emit("card.reveal", target="glassCard")
        view = (session or self.new_session(proposal_id)).apply(proposal)
        return view.model_copy(update={"cues": cues.drain() + view.cues})

    def follow(
        self,
        raw_id: Any,
        on_view: Callable[[TrackView], None],
        session: Optional[TrackSession] = None,
    ) -> Subscription:
        """Push a fresh view for every remote change until the proposal is accepted."""
        if not is_valid_id(raw_id):
            return Subscription.noop()
        tracker = session or self.new_session(raw_id)
        handles: List[Subscription] = []

        def _on_change(proposal: Optional[Proposal]) -> None:
            if proposal is None or proposal == tracker.current:
                return
            on_view(tracker.apply(proposal))
            if tracker.handled_accepted and handles:
                handles[0].close()

        subscription = self._store.subscribe(raw_id, _on_change)
        handles.append(subscription)
        if tracker.handled_accepted:
            subscription.close()
        return subscription
