from datetime import timezone, tzinfo
from typing import Any, Optional

from src.core.common.sanitize import is_valid_id
from src.core.pages.display import format_celebration_date
from src.core.pages.models import CelebrateView
from src.core.pages.presentation import CueRecorder, Presentation
from src.core.proposals.links import ProposalLinks
from src.core.proposals.store import ProposalStore


class CelebratePageController:
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

    def open(self, raw_id: Any) -> CelebrateView:
        cues = CueRecorder(forward_to=self._presentation)
        if not is_valid_id(raw_id):
            home = self._links.home()
            cues.emit("page.redirect", url=home, delay_ms=0)
            return CelebrateView(state="REDIRECT", redirect_to=home, cues=cues.drain())
        proposal_id: str = raw_id

        proposal = self._store.get(proposal_id)
        if proposal is None or proposal.status != "accepted":
            cues.emit("error.panel")
            cues.emit("particles.init", theme="ambient")
            return CelebrateView(state="ERROR", proposal_id=proposal_id, cues=cues.drain())

        cues.emit("particles.init", theme="celebration")
        cues.emit("music.play", track="celebration", loop=True)
        cues.emit("sfx.play", name="confetti")
        cues.emit("confetti.burst", particle_count=200, spread=100, origin_y=0.5)
        cues.emit("confetti.celebrate", duration_ms=5000, delay_ms=1000)
        cues.emit("text.glow", target="proposerNameDisplay", color="rgba(255, 107, 138, 0.5)")
        cues.emit("text.glow", target="partnerNameDisplay", color="rgba(179, 136, 255, 0.5)")
        return CelebrateView(
            state="READY",
            proposal_id=proposal_id,
            proposer_name=proposal.proposer_name,
            partner_name=proposal.partner_name,
            date_text=format_celebration_date(proposal.accepted_at, tz=self._tz),
            share_links=self._links.share_links(),
            cues=cues.drain(),
        )
